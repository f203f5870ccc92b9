import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from docast.config import configure_logging, get_codeblocks
from docast.core.parser import parse as parse_source
from docast.errors import DocastError
from docast.models import Literal, Node, Parent, Point, SourceFile
from docast.options import Options

console = Console()

_SKIPPED_FIELDS = {"type", "position", "children", "value", "data"}


def _format_position(node: Node) -> str:
    if node.position is None:
        return ""
    start, end = node.position.start, node.position.end
    return f" ({start.line}:{start.column}-{end.line}:{end.column}, {start.offset}-{end.offset})"


def _label(node: Node) -> str:
    fields = {
        name: value
        for name, value in node.model_dump(exclude_none=True).items()
        if name not in _SKIPPED_FIELDS
    }
    label = f"[bold]{node.type}[/bold]"
    if node.data:
        fields.update(node.data)
    if fields:
        label += " " + " ".join(escape(f"{name}={value!r}") for name, value in fields.items())
    label += f"[dim]{_format_position(node)}[/dim]"
    if isinstance(node, Literal):
        label += " " + escape(repr(node.value))
    return label


def render_tree(node: Node, tree: Tree | None = None) -> Tree:
    """Build a rich tree mirroring ``node`` and its descendants."""
    branch = Tree(_label(node)) if tree is None else tree.add(_label(node))
    if isinstance(node, Parent):
        for child in node.children:
            render_tree(child, branch)
    return branch


def parse(
    path: Annotated[Path, typer.Argument(help="File containing docblock comments.")],
    codeblocks: Annotated[
        list[str] | None,
        typer.Option("--codeblocks", "-c", help="Block tag parsed as code. Repeat for more tags."),
    ] = None,
    multiline: Annotated[bool, typer.Option(help="Also treat /* as a comment opener.")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print the tree as JSON.")] = False,
    line: Annotated[int, typer.Option(help="Line number of the first character.")] = 1,
    column: Annotated[int, typer.Option(help="Column number of the first character.")] = 1,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log lexer and parser activity.")] = False,
) -> None:
    """Parse docblocks in a file and print the tree."""
    configure_logging(logging.DEBUG if verbose else None)
    options = Options(
        codeblocks=list(codeblocks) if codeblocks else list(get_codeblocks()),
        multiline=multiline,
        start=Point(line=line, column=column, offset=0),
    )
    try:
        tree = parse_source(SourceFile.read(path), options)
    except (DocastError, OSError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    if as_json:
        typer.echo(json.dumps(tree.to_dict(), indent=2))
    else:
        console.print(render_tree(tree))
