import logging

from docast.core.lexer import Lexer
from docast.core.markdown import MarkdownBridge, uncomment
from docast.core.tokens import Token, TokenKind
from docast.core.transforms import unwrap_paragraphs
from docast.errors import DocastSyntaxError
from docast.models import BlockTag, Comment, Description, Position, Root, SourceFile, TypeExpression
from docast.options import Options

logger = logging.getLogger(__name__)


class Parser:
    """Recursive descent over lexer tokens.

    Grammar::

        root           := comment* EOF
        comment        := OPENER description? blockTag* CLOSER
        description    := MARKDOWN
        blockTag       := TAG typeExpression? MARKDOWN?
        typeExpression := TYPE_EXPRESSION
    """

    def __init__(self, source: str | SourceFile, options: Options | None = None) -> None:
        self.options = options or Options()
        self.lexer = Lexer(source, start=self.options.start, multiline=self.options.multiline)
        self.bridge = MarkdownBridge(self.lexer.reader, self.options)
        self._tokens = self.lexer.tokens
        self._index = 0

    @property
    def document(self) -> str:
        return self.lexer.document

    def parse(self) -> Root:
        tree = self._root()
        unwrap_paragraphs(tree)
        for transform in self.options.transforms:
            transform(tree)
        return tree

    # ------------------------------------------------------------------
    # token cursor
    # ------------------------------------------------------------------

    def _peek(self) -> Token:
        return self._tokens[min(self._index, len(self._tokens) - 1)]

    def _next(self) -> Token:
        token = self._peek()
        self._index += 1
        return token

    def _expect(self, kind: TokenKind, message: str | None = None) -> Token:
        token = self._peek()
        if token.kind is not kind:
            raise DocastSyntaxError(message or f"expected {kind} token, found {token.kind}", token)
        return self._next()

    # ------------------------------------------------------------------
    # productions
    # ------------------------------------------------------------------

    def _root(self) -> Root:
        tree = Root()
        while self._peek().kind is TokenKind.OPENER:
            tree.children.append(self._comment())
        self._expect(TokenKind.EOF, f"unexpected {self._peek().kind} token outside of a comment")
        logger.debug("parsed %d comments", len(tree.children))
        return tree

    def _comment(self) -> Comment:
        opener = self._expect(TokenKind.OPENER)
        node = Comment(code=None)

        if self._peek().kind is TokenKind.MARKDOWN:
            node.children.append(self._description())
        while self._peek().kind is TokenKind.TAG:
            node.children.append(self._block_tag())

        token = self._peek()
        if token.kind is TokenKind.EOF:
            raise DocastSyntaxError("unterminated comment", opener)
        closer = self._expect(TokenKind.CLOSER, f"unexpected {token.kind} token in comment")
        node.position = Position(start=opener.start.model_copy(), end=closer.end.model_copy())
        return node

    def _description(self) -> Description:
        token = self._expect(TokenKind.MARKDOWN)
        node = Description(position=token.position)
        node.children = self.bridge.parse(token.text, token.position, node)
        return node

    def _block_tag(self) -> BlockTag:
        tag = self._expect(TokenKind.TAG)
        node = BlockTag(name=tag.text[1:], tag=tag.text)
        last = tag

        if self._peek().kind is TokenKind.TYPE_EXPRESSION:
            last = self._next()
            node.children.append(TypeExpression(value=uncomment(last.text[1:-1]), position=last.position))
            if self._peek().kind is TokenKind.TYPE_EXPRESSION:
                raise DocastSyntaxError(f"{tag.text} has more than one type expression", self._peek())

        if self._peek().kind is TokenKind.MARKDOWN:
            last = self._next()
            if last.text.strip():
                node.children.extend(self.bridge.parse(last.text, last.position, node))

        node.position = Position(start=tag.start.model_copy(), end=last.end.model_copy())
        return node


def parse(source: str | SourceFile, options: Options | None = None) -> Root:
    """Parse every docblock in ``source`` into a tree."""
    return Parser(source, options).parse()
