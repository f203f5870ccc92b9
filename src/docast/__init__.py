from docast.core.markdown import parse_markdown
from docast.core.parser import Parser, parse
from docast.errors import DocastError, DocastSyntaxError
from docast.models import (
    BlockTag,
    Comment,
    Description,
    InlineTag,
    Node,
    Parent,
    Point,
    Position,
    Root,
    SourceFile,
    TypeExpression,
)
from docast.options import MarkdownExtension, Options

__all__ = [
    "BlockTag",
    "Comment",
    "Description",
    "DocastError",
    "DocastSyntaxError",
    "InlineTag",
    "MarkdownExtension",
    "Node",
    "Options",
    "Parent",
    "Parser",
    "Point",
    "Position",
    "Root",
    "SourceFile",
    "TypeExpression",
    "parse",
    "parse_markdown",
]
