import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from docast.config import configure_logging
from docast.core.lexer import tokenize
from docast.models import SourceFile

console = Console()


def tokens(
    path: Annotated[Path, typer.Argument(help="File containing docblock comments.")],
    multiline: Annotated[bool, typer.Option(help="Also treat /* as a comment opener.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log lexer activity.")] = False,
) -> None:
    """Print the token stream of a file."""
    configure_logging(logging.DEBUG if verbose else None)
    try:
        source = SourceFile.read(path)
    except OSError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    rows = tokenize(source, multiline=multiline)
    table = Table(show_lines=False)
    for header in ("kind", "start", "end", "text"):
        table.add_column(header)
    for token in rows:
        table.add_row(
            str(token.kind),
            f"{token.start.line}:{token.start.column}",
            f"{token.end.line}:{token.end.column}",
            escape(repr(token.text)),
        )
    console.print(table)
    console.print(f"({len(rows)} tokens)")
