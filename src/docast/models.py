from pathlib import Path
from typing import Any, Literal as _Literal

from pydantic import BaseModel, Field, SerializeAsAny


class Point(BaseModel):
    line: int
    column: int
    offset: int

    @property
    def valid(self) -> bool:
        return self.line >= 1 and self.column >= 1


class Position(BaseModel):
    start: Point
    end: Point


class Node(BaseModel):
    """Base unist node. Subclasses pin ``type`` to a literal."""

    type: str
    position: Position | None = None
    data: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a unist-shaped dict, dropping unset optional fields."""
        return self.model_dump(exclude_none=True, by_alias=True)


class Parent(Node):
    children: list[SerializeAsAny[Node]] = Field(default_factory=list)


class Literal(Node):
    value: str


# ---------------------------------------------------------------------------
# docast nodes
# ---------------------------------------------------------------------------


class TypeExpression(Literal):
    type: _Literal["typeExpression"] = "typeExpression"


class InlineTag(Literal):
    type: _Literal["inlineTag"] = "inlineTag"
    name: str
    tag: str


class BlockTag(Parent):
    type: _Literal["blockTag"] = "blockTag"
    name: str
    tag: str


class Description(Parent):
    type: _Literal["description"] = "description"


class Comment(Parent):
    type: _Literal["comment"] = "comment"
    code: SerializeAsAny[Node] | None = None


class Root(Parent):
    type: _Literal["root"] = "root"


# ---------------------------------------------------------------------------
# mdast nodes
# ---------------------------------------------------------------------------


class Text(Literal):
    type: _Literal["text"] = "text"


class Break(Node):
    type: _Literal["break"] = "break"

    @property
    def hard(self) -> bool:
        return bool(self.data and self.data.get("hard"))

    @property
    def blank(self) -> bool:
        return bool(self.data and self.data.get("blank"))


class Code(Literal):
    type: _Literal["code"] = "code"
    lang: str | None = None
    meta: str | None = None


class InlineCode(Literal):
    type: _Literal["inlineCode"] = "inlineCode"


class Html(Literal):
    type: _Literal["html"] = "html"


class Paragraph(Parent):
    type: _Literal["paragraph"] = "paragraph"


class Emphasis(Parent):
    type: _Literal["emphasis"] = "emphasis"


class Strong(Parent):
    type: _Literal["strong"] = "strong"


class Delete(Parent):
    type: _Literal["delete"] = "delete"


class Link(Parent):
    type: _Literal["link"] = "link"
    url: str
    title: str | None = None


class Image(Node):
    type: _Literal["image"] = "image"
    url: str
    title: str | None = None
    alt: str | None = None


class Blockquote(Parent):
    type: _Literal["blockquote"] = "blockquote"


class List(Parent):
    type: _Literal["list"] = "list"
    ordered: bool = False
    start: int | None = None
    spread: bool = False


class ListItem(Parent):
    type: _Literal["listItem"] = "listItem"
    spread: bool = False
    checked: bool | None = None


class ThematicBreak(Node):
    type: _Literal["thematicBreak"] = "thematicBreak"


class Table(Parent):
    type: _Literal["table"] = "table"
    align: list[str | None] = Field(default_factory=list)


class TableRow(Parent):
    type: _Literal["tableRow"] = "tableRow"


class TableCell(Parent):
    type: _Literal["tableCell"] = "tableCell"


class SourceFile(BaseModel):
    """Text buffer to parse, optionally tied to the file it was read from."""

    value: str
    path: str | None = None

    @classmethod
    def read(cls, path: str | Path) -> "SourceFile":
        file_path = Path(path)
        try:
            value = file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise FileNotFoundError(f"File not found: {path}") from None
        return cls(value=value, path=str(file_path))

    def __str__(self) -> str:
        return self.value
