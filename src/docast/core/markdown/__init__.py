from docast.core.markdown.bridge import MarkdownBridge, parse_markdown, uncomment, uncomment_lines
from docast.core.markdown.engine import create_engine
from docast.core.markdown.tree import TreeBuilder

__all__ = [
    "MarkdownBridge",
    "TreeBuilder",
    "create_engine",
    "parse_markdown",
    "uncomment",
    "uncomment_lines",
]
