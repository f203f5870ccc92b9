import re
from collections.abc import Callable, Mapping
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.token import Token
from pydantic import BaseModel, ConfigDict, Field

from docast.models import Node, Parent, Point, Position, Root

Codeblock = str | re.Pattern[str]
MarkdownPlugin = Callable[[MarkdownIt], Any]
TokenHandler = Callable[[Token, Position | None], Node | None]
MarkdownTransform = Callable[[Parent], None]
Transform = Callable[[Root], None]


class MarkdownExtension(BaseModel):
    """Hooks into the conversion of markdown-it tokens to tree nodes.

    ``handlers`` maps a markdown-it token type to a callable that receives the
    token and its markdown-local position and returns the node to insert, or
    ``None`` to drop the token. A node returned for an opening token becomes
    the parent of everything up to the matching closing token.
    ``transforms`` run over the markdown root after all built-in passes.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    handlers: Mapping[str, TokenHandler] = Field(default_factory=dict)
    transforms: list[MarkdownTransform] = Field(default_factory=list)


class Options(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid", frozen=True, populate_by_name=True)

    codeblocks: Codeblock | list[Codeblock] | None = "example"
    """Block tags whose content is parsed as fenced code, by name, ``@tag`` or pattern."""

    start: Point | None = Field(default=None, alias="from")
    """Point of the first character, for documents sliced from a larger file."""

    multiline: bool = False
    """Also treat ``/*`` as a comment opener."""

    markdown_plugins: list[MarkdownPlugin] = Field(default_factory=list)
    mdast_extensions: list[MarkdownExtension] = Field(default_factory=list)
    transforms: list[Transform] = Field(default_factory=list)

    def codeblock_checks(self) -> list[Codeblock]:
        if self.codeblocks is None:
            return []
        if isinstance(self.codeblocks, list):
            return list(self.codeblocks)
        return [self.codeblocks]
