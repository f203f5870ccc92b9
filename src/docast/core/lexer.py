import logging
import re
from typing import NamedTuple

from docast.core.reader import Reader
from docast.core.tokens import Token, TokenKind
from docast.models import Point, SourceFile

logger = logging.getLogger(__name__)

CLOSER_RE = re.compile(r"\*/")
DELIMITER_RE = re.compile(r"\*")
TAG_RE = re.compile(r"@\b\S+")
TYPE_EXPRESSION_RE = re.compile(r"\{[^@].*?\}?\}", re.DOTALL)
WHITESPACE_RE = re.compile(r"\s")
MARKDOWN_RE = re.compile(
    r"(?!(?:\*/)|(?:\*\s)|(?:@\S+\b)|(?:\{[^@].*?\}))"
    r"\S.*?"
    r"(?=(?:[\t\n\r ]*\*/)|(?:[\t\n\r *]*\*[\t ]*(?<!\{)@\b\S+))",
    re.DOTALL,
)


class Rule(NamedTuple):
    kind: TokenKind
    pattern: re.Pattern[str]
    keep: bool


class Lexer:
    """Split a document into docblock tokens.

    Only text inside comments is tokenized; everything between comments is
    skipped. Rules are tried in priority order at each position and the first
    match wins. Whitespace and ``*`` continuation delimiters are consumed but
    not kept. The token tuple always ends with an ``eof`` token.
    """

    def __init__(self, source: str | SourceFile, start: Point | None = None, multiline: bool = False) -> None:
        self.reader = Reader(source, start)
        self.multiline = multiline
        self._comment = False
        self._current: tuple[TokenKind, Point] | None = None
        self._tokens: list[Token] = []
        self.tokens: tuple[Token, ...] = self._tokenize()

    @property
    def document(self) -> str:
        return self.reader.document

    @property
    def opener(self) -> re.Pattern[str]:
        return re.compile(r"/\*{1,2}") if self.multiline else re.compile(r"/\*{2}")

    @property
    def search(self) -> re.Pattern[str]:
        return re.compile(r"/\*{%d,2}.*?\*/" % (1 if self.multiline else 2), re.DOTALL)

    @property
    def rules(self) -> tuple[Rule, ...]:
        return (
            Rule(TokenKind.OPENER, self.opener, True),
            Rule(TokenKind.TAG, TAG_RE, True),
            Rule(TokenKind.TYPE_EXPRESSION, TYPE_EXPRESSION_RE, True),
            Rule(TokenKind.CLOSER, CLOSER_RE, True),
            Rule(TokenKind.DELIMITER, DELIMITER_RE, False),
            Rule(TokenKind.WHITESPACE, WHITESPACE_RE, False),
            Rule(TokenKind.MARKDOWN, MARKDOWN_RE, True),
        )

    def _enter(self, kind: TokenKind) -> None:
        self._current = (kind, self.reader.now())
        logger.debug("enter: %s at %d", kind, self.reader.index)
        if kind is TokenKind.OPENER:
            self._comment = True

    def _exit(self, kind: TokenKind) -> Token:
        assert self._current is not None, "cannot exit without token"
        assert self._current[0] is kind, "expected exit token to match current token"

        start = self._current[1]
        end = self.reader.now()
        base = self.reader.base_offset
        token = Token(kind=kind, start=start, end=end, text=self.document[start.offset - base : end.offset - base])

        self._current = None
        self._tokens.append(token)
        logger.debug("exit: %s at %d", kind, self.reader.index)
        if kind is TokenKind.CLOSER:
            self._comment = False
        return token

    def _tokenize(self) -> tuple[Token, ...]:
        rules = self.rules
        for match in self.search.finditer(self.document):
            if match.start() < self.reader.index:
                continue
            self.reader.read(match.start() - self.reader.index)
            self._tokenize_comment(match.end(), rules)

        if not self.reader.eof:
            self.reader.read(len(self.document) - self.reader.index)
        self._enter(TokenKind.EOF)
        self._exit(TokenKind.EOF)

        logger.debug("lexed %d tokens", len(self._tokens))
        return tuple(self._tokens)

    def _tokenize_comment(self, end: int, rules: tuple[Rule, ...]) -> None:
        while self.reader.index < end and not self.reader.eof:
            for rule in rules:
                if rule.kind is not TokenKind.OPENER and not self._comment:
                    continue
                match = self.reader.peek_match(rule.pattern)
                if match is None or not match.group():
                    continue
                if rule.keep:
                    self._enter(rule.kind)
                self.reader.read(len(match.group()))
                if rule.keep:
                    self._exit(rule.kind)
                break
            else:
                self.reader.read()


def tokenize(source: str | SourceFile, start: Point | None = None, multiline: bool = False) -> tuple[Token, ...]:
    return Lexer(source, start=start, multiline=multiline).tokens
