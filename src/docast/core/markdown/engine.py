import logging
from collections.abc import Sequence

from markdown_it import MarkdownIt
from markdown_it.parser_inline import ParserInline
from markdown_it.rules_core import StateCore
from markdown_it.rules_inline import StateInline
from markdown_it.token import Token
from markdown_it.utils import EnvType

from docast.options import MarkdownPlugin

logger = logging.getLogger(__name__)

SPAN = "span"
"""``Token.meta`` key holding the ``(start, end)`` source span of an inline token."""

INLINE_TAG = "inline_tag"
SETEXT_PARAGRAPH = "setext_paragraph"

# Rules that merge adjacent text tokens. Merged tokens would lose their spans.
_MERGE_RULES = ["text_join", "fragments_join", "text_collapse"]


class PositionedStateInline(StateInline):
    def __init__(self, src: str, md: MarkdownIt, env: EnvType, tokens: list[Token]) -> None:
        super().__init__(src, md, env, tokens)
        self.pending_start = 0

    def pushPending(self) -> Token:  # noqa: N802
        start = self.pending_start
        token = super().pushPending()
        token.meta[SPAN] = (start, start + len(token.content))
        return token


class PositionedParserInline(ParserInline):
    """Inline parser that records the source span of every token it emits.

    Spans are offsets into the inline content of the enclosing block token
    and are stored under ``token.meta["span"]``. Pending text gets the span of
    the characters it was collected from. Delimiter runs pushed by emphasis
    like rules are split one character per token. Any other token gets the
    span of the rule invocation that produced it.
    """

    def __init__(self, parser: ParserInline) -> None:
        # Reuse the configured rulers so presets and plugins stay in effect.
        self.__dict__.update(parser.__dict__)

    def tokenize(self, state: StateInline) -> None:
        rules = self.ruler.getRules("")
        end = state.posMax
        max_nesting = state.md.options["maxNesting"]

        while state.pos < end:
            start = state.pos
            size = len(state.tokens)
            if not state.pending:
                state.pending_start = start  # type: ignore[attr-defined]

            ok = False
            if state.level < max_nesting:
                for rule in rules:
                    ok = rule(state, False)
                    if ok:
                        break

            if ok:
                _stamp(state.tokens[size:], start, state.pos)
                if state.pos >= end:
                    break
                continue

            state.pending += state.src[state.pos]
            state.pos += 1

        if state.pending:
            state.pushPending()

    def parse(self, src: str, md: MarkdownIt, env: EnvType, tokens: list[Token]) -> list[Token]:
        state = PositionedStateInline(src, md, env, tokens)
        self.tokenize(state)
        for rule in self.ruler2.getRules(""):
            rule(state)
        return state.tokens


def _stamp(tokens: list[Token], start: int, end: int) -> None:
    pending = [token for token in tokens if SPAN not in token.meta]
    if not pending:
        return

    if all(token.type == "text" for token in pending) and sum(len(t.content) for t in pending) == end - start:
        offset = start
        for token in pending:
            token.meta[SPAN] = (offset, offset + len(token.content))
            offset += len(token.content)
        return

    for token in pending:
        token.meta[SPAN] = (start, end)


def inline_tag(state: StateInline, silent: bool) -> bool:
    """Match ``{@tag value}`` up to the first ``}`` not escaped by a backslash."""
    pos = state.pos
    src = state.src
    if src[pos] != "{" or pos + 1 >= state.posMax or src[pos + 1] != "@":
        return False

    end = pos + 2
    while end < state.posMax and not (src[end] == "}" and src[end - 1] != "\\"):
        end += 1
    if end >= state.posMax:
        return False

    if not silent:
        token = state.push(INLINE_TAG, "", 0)
        token.content = src[pos : end + 1]
        token.markup = "{"
    state.pos = end + 1
    return True


def inline_tag_plugin(md: MarkdownIt) -> None:
    md.inline.ruler.after("text", INLINE_TAG, inline_tag)


def setext_paragraph(state: StateCore) -> None:
    """Turn setext headings back into paragraphs that end with their underline.

    Runs between block and inline parsing, so the underline is parsed as
    inline text of the paragraph it belongs to.
    """
    lines = state.src.split("\n")
    for index, token in enumerate(state.tokens):
        if token.type not in {"heading_open", "heading_close"} or token.markup not in {"=", "-"}:
            continue
        marker = token.markup
        token.type = token.type.replace("heading", "paragraph")
        token.tag = "p"
        token.markup = ""
        if token.nesting != 1 or not token.map or index + 1 >= len(state.tokens):
            continue

        # the underline is the last line of the heading, after any container prefix
        line = lines[min(token.map[1] - 1, len(lines) - 1)].rstrip()
        underline = line[len(line.rstrip(marker)) :]
        inline = state.tokens[index + 1]
        inline.content = f"{inline.content}\n{underline}"


def create_engine(plugins: Sequence[MarkdownPlugin] = ()) -> MarkdownIt:
    """Build a CommonMark parser configured for docblock prose.

    ATX headings are disabled and setext headings are turned back into
    paragraphs, so ``#`` lines and underlines stay plain text. Text merging is
    disabled so every inline token keeps its own span. ``{@tag value}`` is
    recognized as an ``inline_tag`` token. ``plugins`` are applied last.
    """
    md = MarkdownIt("commonmark")
    md.disable("heading")
    md.core.ruler.after("block", SETEXT_PARAGRAPH, setext_paragraph)
    md.disable(_MERGE_RULES, ignoreInvalid=True)
    md.inline = PositionedParserInline(md.inline)
    md.use(inline_tag_plugin)
    for plugin in plugins:
        logger.debug("applying markdown plugin %r", plugin)
        md.use(plugin)
    return md
