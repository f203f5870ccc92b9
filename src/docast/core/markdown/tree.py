import logging
import re
from bisect import bisect_right
from collections.abc import Mapping, Sequence

from markdown_it.token import Token

from docast.core.location import Location
from docast.core.markdown.engine import INLINE_TAG, SPAN
from docast.models import (
    Blockquote,
    Break,
    Code,
    Delete,
    Emphasis,
    Html,
    Image,
    InlineCode,
    InlineTag,
    Link,
    List,
    ListItem,
    Literal,
    Node,
    Paragraph,
    Parent,
    Point,
    Position,
    Strong,
    Table,
    TableCell,
    TableRow,
    Text,
    ThematicBreak,
)
from docast.options import TokenHandler

logger = logging.getLogger(__name__)

INLINE_TAG_RE = re.compile(r"\{(@[^\s}]*)\s*(.*?)\s*\}\Z", re.DOTALL)

_TEXT_TYPES = {"text", "text_special", "softbreak"}
_ALIGN_RE = re.compile(r"text-align:\s*(left|right|center)")

Span = tuple[int, int]


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _base_type(token: Token) -> str:
    return token.type.rsplit("_", 1)[0] if token.nesting else token.type


def _span(token: Token) -> Span:
    return token.meta.get(SPAN, (0, 0))


def inline_tag_node(raw: str, position: Position | None = None) -> InlineTag:
    """Build an inline tag node from its raw ``{@tag value}`` source."""
    match = INLINE_TAG_RE.match(raw)
    if match is None:
        raise ValueError(f"not an inline tag: {raw!r}")
    tag = match.group(1)
    return InlineTag(tag=tag, name=tag[1:], value=match.group(2), position=position)


class InlineContent:
    """Maps offsets in an inline token's content to points in the markdown value.

    Paragraph content is the source lines with their container prefixes
    (indentation, list markers, ``>``) removed, one content line per source
    line, so each content line is located as a suffix of its source line.
    """

    def __init__(self, builder: "TreeBuilder", token: Token, fallback_line: int) -> None:
        self.builder = builder
        self.content = token.content
        first_line = token.map[0] if token.map else fallback_line
        self._starts: list[int] = []
        self._targets: list[int] = []

        offset = 0
        for index, content_line in enumerate(self.content.split("\n")):
            line = min(first_line + index, len(builder.lines) - 1)
            self._starts.append(offset)
            self._targets.append(builder.line_offsets[line] + builder.content_column(line, content_line))
            offset += len(content_line) + 1

    def offset(self, content_offset: int) -> int:
        index = max(bisect_right(self._starts, content_offset) - 1, 0)
        return self._targets[index] + content_offset - self._starts[index]

    def point(self, content_offset: int) -> Point:
        return self.builder.location.point(self.offset(content_offset))

    def position(self, start: int, end: int) -> Position:
        return Position(start=self.point(start), end=self.point(end))


class TreeBuilder:
    """Convert a markdown-it token stream into mdast-shaped nodes.

    Positions are local to ``value``. Blank lines between block nodes become
    ``break`` nodes flagged ``data.blank``.
    """

    def __init__(self, value: str, handlers: Mapping[str, TokenHandler] | None = None) -> None:
        self.value = value
        self.lines = value.split("\n")
        self.location = Location(value)
        self.handlers = dict(handlers or {})
        self.line_offsets: list[int] = []
        offset = 0
        for line in self.lines:
            self.line_offsets.append(offset)
            offset += len(line) + 1
        self._blocks: set[int] = set()
        self._tables: list[Table] = []
        self._table_head = False

    # ------------------------------------------------------------------
    # coordinates
    # ------------------------------------------------------------------

    def point(self, line: int, column: int) -> Point:
        """Point for a 0-based line index and 1-based column, clamped to the value."""
        line = min(max(line, 0), len(self.lines) - 1)
        column = min(max(column, 1), len(self.lines[line]) + 1)
        return self.location.point(self.line_offsets[line] + column - 1)

    def content_column(self, line: int, content_line: str) -> int:
        """0-based column where ``content_line`` begins in source line ``line``."""
        source = self.lines[line].rstrip()
        content = content_line.rstrip()
        if not content:
            return len(self.lines[line])
        if source.endswith(content):
            return len(source) - len(content)
        return max(self.lines[line].find(content), 0)

    def first_column(self, line: int, after: int = 1) -> int:
        text = self.lines[line]
        index = after - 1
        while index < len(text) and text[index] in " \t":
            index += 1
        return index + 1

    def line_end(self, line: int) -> Point:
        line = min(max(line, 0), len(self.lines) - 1)
        return self.point(line, len(self.lines[line].rstrip()) + 1)

    # ------------------------------------------------------------------
    # block tokens
    # ------------------------------------------------------------------

    def build(self, tokens: Sequence[Token]) -> Parent:
        root = Parent(
            type="root",
            position=Position(start=self.point(0, 1), end=self.line_end(len(self.lines) - 1)),
        )
        self._blocks.add(id(root))

        # (node, opening token, whether the node was created for that token)
        stack: list[tuple[Parent, Token | None, bool]] = [(root, None, True)]
        for token in tokens:
            parent = stack[-1][0]

            if token.nesting == 1:
                node = self._open_block(token, parent)
                if node is None:
                    stack.append((parent, token, False))
                else:
                    parent.children.append(node)
                    stack.append((node, token, True))
            elif token.nesting == -1:
                node, opener, owned = stack.pop()
                if opener is not None and opener.type == "thead_open":
                    self._table_head = False
                if owned and opener is not None:
                    self._close_block(node)
            elif token.type == "inline":
                line = token.map[0] if token.map else max(_start_line(parent) - 1, 0)
                parent.children.extend(self.inline(token, line))
            else:
                leaf = self._leaf(token)
                if leaf is not None:
                    parent.children.append(leaf)

        self._mark_blank_lines(root, root=True)
        return root

    def _block_position(self, token: Token, parent: Parent) -> Position | None:
        if not token.map:
            return None
        line = token.map[0]
        after = 1
        if parent.type != "root" and parent.position is not None and parent.position.start.line - 1 == line:
            after = parent.position.start.column + 1
        start = self.point(line, self.first_column(line, after))
        return Position(start=start, end=self.line_end(max(token.map[1] - 1, line)))

    def _open_block(self, token: Token, parent: Parent) -> Parent | None:
        position = self._block_position(token, parent)
        if token.type in self.handlers:
            handled = self.handlers[token.type](token, position)
            if handled is not None and not isinstance(handled, Parent):
                raise TypeError(f"handler for {token.type} must return a parent node")
            node = handled
        else:
            node = self._default_open_block(token, parent)
            if node is not None and node.position is None:
                node.position = position
        if node is not None:
            self._blocks.add(id(node))
        return node

    def _default_open_block(self, token: Token, parent: Parent) -> Parent | None:
        kind = _base_type(token)
        if kind == "thead":
            self._table_head = True
            return None
        if kind == "tbody":
            return None
        if kind == "paragraph":
            if isinstance(parent, ListItem) and not token.hidden:
                parent.spread = True
            return Paragraph()
        if kind == "blockquote":
            return Blockquote()
        if kind == "bullet_list":
            return List(ordered=False)
        if kind == "ordered_list":
            start = token.attrGet("start")
            return List(ordered=True, start=int(start) if start is not None else 1)
        if kind == "list_item":
            return self._list_item(token, parent)
        if kind == "table":
            table = Table()
            self._tables.append(table)
            return table
        if kind == "tr":
            return TableRow()
        if kind in {"th", "td"}:
            if kind == "th" and self._table_head and self._tables:
                style = token.attrGet("style")
                match = _ALIGN_RE.search(str(style)) if style else None
                self._tables[-1].align.append(match.group(1) if match else None)
            return TableCell()
        return Parent(type=camel_case(kind))

    def _list_item(self, token: Token, parent: Parent) -> ListItem:
        node = ListItem()
        if not token.map:
            return node

        line = token.map[0]
        marker = f"{token.info}{token.markup}"
        after = 0
        if parent.position is not None and parent.position.start.line - 1 == line:
            after = parent.position.start.column - 1
        column = self.lines[line].find(marker, after) if marker else -1
        if column < 0:
            column = self.first_column(line) - 1
        node.position = Position(
            start=self.point(line, column + 1),
            end=self.point(line, column + 1 + len(marker)),
        )
        return node

    def _close_block(self, node: Parent) -> None:
        if isinstance(node, List):
            node.spread = any(isinstance(item, ListItem) and item.spread for item in node.children)
        if isinstance(node, Table) and self._tables and self._tables[-1] is node:
            self._tables.pop()

        children = [child.position for child in node.children if child.position is not None]
        if not children:
            return
        if node.position is None or isinstance(node, Paragraph | List | TableRow | TableCell):
            node.position = Position(start=children[0].start.model_copy(), end=children[-1].end.model_copy())
        else:
            node.position.end = children[-1].end.model_copy()

    def _leaf(self, token: Token) -> Node | None:
        position = None
        if token.map:
            line = token.map[0]
            position = Position(
                start=self.point(line, self.first_column(line)),
                end=self.line_end(max(token.map[1] - 1, line)),
            )

        if token.type in self.handlers:
            return self.handlers[token.type](token, position)

        if token.type == "fence":
            lang, _, meta = token.info.strip().partition(" ")
            node: Node = Code(value=token.content.removesuffix("\n"), lang=lang or None, meta=meta.strip() or None)
        elif token.type == "code_block":
            node = Code(value=token.content.removesuffix("\n"))
        elif token.type == "html_block":
            node = Html(value=token.content.removesuffix("\n"))
        elif token.type == "hr":
            node = ThematicBreak()
        else:
            logger.debug("no handler for block token %s", token.type)
            node = Literal(type=camel_case(token.type), value=token.content)
        node.position = position
        return node

    # ------------------------------------------------------------------
    # inline tokens
    # ------------------------------------------------------------------

    def inline(self, token: Token, fallback_line: int = 0) -> list[Node]:
        content = InlineContent(self, token, fallback_line)
        container = Parent(type="inline")
        stack: list[tuple[Parent, Token | None]] = [(container, None)]

        for child in token.children or []:
            parent = stack[-1][0]
            span = _span(child)

            if child.nesting == -1:
                node, opener = stack.pop()
                if opener is not None:
                    self._close_inline(node, opener, child, content)
                continue

            if child.type in self.handlers:
                handled = self.handlers[child.type](child, content.position(*span))
                if handled is not None:
                    parent.children.append(handled)
                if child.nesting == 1:
                    if isinstance(handled, Parent):
                        stack.append((handled, child))
                    else:
                        stack.append((parent, None))
                continue

            if child.nesting == 1:
                node = self._open_inline(child, content, span)
                parent.children.append(node)
                stack.append((node, child))
                continue

            self._inline_leaf(parent, child, content, span)

        return list(container.children)

    def _open_inline(self, token: Token, content: InlineContent, span: Span) -> Parent:
        kind = _base_type(token)
        if kind in {"em", "strong", "s"}:
            node: Parent = {"em": Emphasis, "strong": Strong, "s": Delete}[kind]()
            start = span[1] - len(token.markup)
            node.position = content.position(start, start)
            return node

        if kind == "link":
            href = token.attrGet("href")
            title = token.attrGet("title")
            node = Link(url=str(href or ""), title=str(title) if title is not None else None)
        else:
            node = Parent(type=camel_case(kind))
        node.position = content.position(*span)
        return node

    def _close_inline(self, node: Parent, opener: Token, closer: Token, content: InlineContent) -> None:
        span = _span(closer)
        if node.position is None:
            node.position = content.position(_span(opener)[0], span[1])
            return

        if isinstance(node, Emphasis | Strong | Delete):
            node.position.end = content.point(span[0] + len(opener.markup))
            return

        node.position.end = content.point(span[1])
        if isinstance(node, Link) and opener.markup == "autolink" and len(node.children) == 1:
            start, end = _span(opener)
            node.children[0].position = content.position(start + 1, end - 1)

    def _inline_leaf(self, parent: Parent, token: Token, content: InlineContent, span: Span) -> None:
        if token.type in _TEXT_TYPES:
            value = "\n" if token.type == "softbreak" else token.content
            if not value:
                return
            last = parent.children[-1] if parent.children else None
            if isinstance(last, Text) and last.position is not None:
                last.value += value
                last.position.end = content.point(span[1])
            else:
                parent.children.append(Text(value=value, position=content.position(*span)))
            return

        if token.type == "hardbreak":
            source = content.content
            if source[span[0] : span[0] + 1] == "\\":
                # the line ending after an escaped break belongs to the next text
                parent.children.append(Break(data={"hard": True}, position=content.position(span[0], span[0] + 1)))
                parent.children.append(Text(value="\n", position=content.position(span[0] + 1, span[1])))
                return
            start = span[0]
            while start > 0 and source[start - 1] == " ":
                start -= 1
            parent.children.append(Break(position=content.position(start, span[1])))
            return

        position = content.position(*span)
        if token.type == "code_inline":
            node: Node = InlineCode(value=token.content, position=position)
        elif token.type == "html_inline":
            node = Html(value=token.content, position=position)
        elif token.type == "image":
            src = token.attrGet("src")
            title = token.attrGet("title")
            node = Image(
                url=str(src or ""),
                title=str(title) if title is not None else None,
                alt=_plain_text(token.children or []),
                position=position,
            )
        elif token.type == INLINE_TAG:
            node = inline_tag_node(token.content, position)
        else:
            logger.debug("no handler for inline token %s", token.type)
            node = Literal(type=camel_case(token.type), value=token.content, position=position)
        parent.children.append(node)

    # ------------------------------------------------------------------
    # blank lines
    # ------------------------------------------------------------------

    def _blank_lines(self, first: int, last: int) -> list[Node]:
        """Breaks for blank 0-based lines in ``[first, last)`` that end with a line ending."""
        last = min(last, len(self.lines) - 1)
        return [
            Break(
                data={"blank": True},
                position=Position(start=self.point(line, len(self.lines[line]) + 1), end=self.point(line + 1, 1)),
            )
            for line in range(first, last)
            if not self.lines[line].strip()
        ]

    def _mark_blank_lines(self, node: Parent, root: bool = False) -> None:
        for child in node.children:
            if isinstance(child, Parent) and id(child) in self._blocks and not isinstance(child, Paragraph):
                self._mark_blank_lines(child)

        positioned = [child for child in node.children if child.position is not None]
        if not positioned:
            return

        gaps: dict[int, list[Node]] = {}
        for index, child in enumerate(positioned):
            assert child.position is not None
            if index + 1 < len(positioned):
                following = positioned[index + 1].position
                assert following is not None
                gaps[id(child)] = self._blank_lines(child.position.end.line, following.start.line - 1)
            elif root:
                gaps[id(child)] = self._blank_lines(child.position.end.line, len(self.lines))

        children: list[Node] = []
        if root:
            first = positioned[0].position
            assert first is not None
            children.extend(self._blank_lines(0, first.start.line - 1))
        for child in node.children:
            children.append(child)
            gap = gaps.get(id(child), [])
            if isinstance(node, List) and isinstance(child, Parent):
                child.children.extend(gap)
            else:
                children.extend(gap)
        node.children = children


def _start_line(node: Node) -> int:
    return node.position.start.line if node.position is not None else 1


def _plain_text(tokens: Sequence[Token]) -> str:
    parts: list[str] = []
    for token in tokens:
        if token.children:
            parts.append(_plain_text(token.children))
        elif token.type in {"text", "text_special", "code_inline"}:
            parts.append(token.content)
        elif token.type in {"softbreak", "hardbreak"}:
            parts.append("\n")
    return "".join(parts)
