import logging
import re
from collections.abc import Iterator
from typing import NamedTuple

from docast.core.location import Location
from docast.core.markdown.engine import create_engine
from docast.core.markdown.tree import TreeBuilder
from docast.models import BlockTag, Break, Code, Description, Node, Parent, Point, Position, Text
from docast.options import Options, TokenHandler

logger = logging.getLogger(__name__)

UNCOMMENT_RE = re.compile(r"[\t ]*\*[\t ]{0,2}")
FENCE = "```"

_LINE_SPLIT_RE = re.compile(r"([\r\n])")
_NEWLINES_RE = re.compile(r"[\n\r]")


class Line(NamedTuple):
    """One markdown line taken from a token's raw text."""

    index: int
    """Line index relative to the token's first line, counted the way ``Location`` counts lines."""

    removed: int
    """Columns between the start of the source line and the start of ``text``."""

    text: str


def uncomment(value: str) -> str:
    """Strip ``*`` continuation markers from the start of every line of ``value``."""
    parts = _LINE_SPLIT_RE.split(value)
    for index in range(0, len(parts), 2):
        match = UNCOMMENT_RE.match(parts[index])
        if match:
            parts[index] = parts[index][match.end() :]
    return "".join(parts)


def uncomment_lines(value: str, column: int) -> list[Line]:
    """Split raw token text into decoration-free markdown lines.

    ``column`` is the source column of the token's first character; the first
    line carries no decoration. ``\\r\\n`` yields one markdown line but two
    ``Location`` lines, so ``Line.index`` skips the empty line between them.
    """
    parts = _LINE_SPLIT_RE.split(value)
    texts = parts[0::2]
    separators = parts[1::2]

    lines = [Line(index=0, removed=column - 1, text=texts[0])]
    for index in range(1, len(texts)):
        if separators[index - 1] == "\r" and index < len(separators) and separators[index] == "\n" and not texts[index]:
            continue
        match = UNCOMMENT_RE.match(texts[index])
        removed = match.end() if match else 0
        lines.append(Line(index=index, removed=removed, text=texts[index][removed:]))
    return lines


class MarkdownBridge:
    """Parse the markdown content of a token into positioned tree nodes.

    One bridge serves every markdown token of a parse. Positions of the nodes
    it returns are in the coordinates of ``location``.
    """

    def __init__(self, location: Location, options: Options | None = None) -> None:
        self.location = location
        self.options = options or Options()
        self.engine = create_engine(self.options.markdown_plugins)
        self.handlers: dict[str, TokenHandler] = {}
        for extension in self.options.mdast_extensions:
            self.handlers.update(extension.handlers)

    def is_codeblock(self, node: BlockTag | Description | None, value: str) -> bool:
        if not isinstance(node, BlockTag) or value.startswith(FENCE):
            return False
        for check in self.options.codeblock_checks():
            if isinstance(check, str):
                if check in (node.name, node.tag):
                    return True
            elif check.search(node.name) or check.search(node.tag):
                return True
        return False

    def parse(self, value: str, position: Position, node: BlockTag | Description | None = None) -> list[Node]:
        codeblock = self.is_codeblock(node, value)
        lines = uncomment_lines(value, position.start.column)
        text = "\n".join(line.text for line in lines)
        if codeblock:
            text = f"{FENCE}\n{text}\n{FENCE}"
        logger.debug("parsing markdown at %d:%d (codeblock=%s)", position.start.line, position.start.column, codeblock)

        tokens = self.engine.parse(text)
        root = TreeBuilder(text, self.handlers).build(tokens)

        self.remap_positions(root, lines, position, codeblock)
        self.insert_blank_breaks(root)
        self.normalize_text(root)
        for extension in self.options.mdast_extensions:
            for transform in extension.transforms:
                transform(root)
        return list(root.children)

    # ------------------------------------------------------------------
    # passes
    # ------------------------------------------------------------------

    def remap_positions(self, root: Parent, lines: list[Line], position: Position, codeblock: bool) -> None:
        """Move every node from markdown-local coordinates to source coordinates."""

        def remap(point: Point) -> None:
            index = point.line - 1
            if index < len(lines):
                line = lines[index]
                point.line = position.start.line + line.index
                point.column += line.removed
            else:
                point.line = position.start.line + lines[-1].index + index - len(lines) + 1
            point.offset = self.location.offset(point)

        for node in _descendants(root):
            if node.position is None:
                continue
            start, end = node.position.start, node.position.end
            span = end.line - start.line
            remap(start)

            if codeblock and isinstance(node, Code):
                node.position.end = position.end.model_copy()
            elif isinstance(node, Break):
                end.line = start.line + span
                end.column = start.column + 1 if node.hard else self._first_column(end.line)
                end.offset = self.location.offset(end)
            else:
                remap(end)

    def insert_blank_breaks(self, root: Parent) -> None:
        """Give every blank line break a preceding break for the line ending before it."""
        for parent in [root, *(node for node in _descendants(root) if isinstance(node, Parent))]:
            children: list[Node] = []
            for child in parent.children:
                if isinstance(child, Break) and child.blank and child.position is not None:
                    line_start = self.location.line_start(child.position.start.line)
                    if line_start > self.location.base_offset:
                        children.append(
                            Break(
                                position=Position(
                                    start=self.location.point(line_start - 1),
                                    end=self.location.point(line_start),
                                )
                            )
                        )
                children.append(child)
            parent.children = children

    def normalize_text(self, root: Parent) -> None:
        """Fold line endings inside text into spaces.

        Text after an escaped hard break starts with the line ending the break
        escaped; that character is dropped and the node restarts where its
        remaining value first occurs in the document.
        """
        document = self.location.document
        base = self.location.base_offset
        for parent in [root, *(node for node in _descendants(root) if isinstance(node, Parent))]:
            children: list[Node] = []
            for child in parent.children:
                previous = children[-1] if children else None
                if isinstance(child, Text) and child.position is not None:
                    if isinstance(previous, Break) and previous.hard:
                        assert child.value[:1] in ("\n", "\r"), "expected text after hard break to start with a line ending"
                        child.value = child.value[1:]
                        if not child.value:
                            continue
                        start = max(child.position.start.offset, base)
                        found = document.find(_NEWLINES_RE.split(child.value, maxsplit=1)[0], start - base)
                        offset = found + base if found >= 0 else start + 1
                        child.position.start = self.location.point(offset)
                    elif child.value.endswith(("\n", "\r")):
                        end = child.position.end
                        end.column = self._first_column(end.line)
                        end.offset = self.location.offset(end)
                    child.value = _NEWLINES_RE.sub(" ", child.value)
                children.append(child)
            parent.children = children

    def _first_column(self, line: int) -> int:
        return self.location.start.column if line == self.location.start.line else 1


def _descendants(node: Node) -> Iterator[Node]:
    if isinstance(node, Parent):
        for child in node.children:
            yield child
            yield from _descendants(child)


def parse_markdown(value: str, position: Position, options: Options | None = None) -> list[Node]:
    """Parse markdown sliced from a larger document at ``position``.

    Returned nodes are positioned in the coordinates of the enclosing document.
    """
    location = Location(value, start=position.start)
    return MarkdownBridge(location, options).parse(value, position)
