import typer

from docast.cli.parse import parse
from docast.cli.tokens import tokens

app = typer.Typer(
    name="docast",
    help="docast CLI: inspect docblock syntax trees.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.command("parse")(parse)
app.command("tokens")(tokens)


def main() -> None:
    app()
