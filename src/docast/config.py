import logging
import os

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_CODEBLOCKS = ("example",)


def get_log_level() -> int:
    name = os.getenv("DOCAST_LOG_LEVEL", "WARNING").upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level in DOCAST_LOG_LEVEL: {name}")
    return level


def get_codeblocks() -> tuple[str, ...]:
    raw = os.getenv("DOCAST_CODEBLOCKS")
    if raw is None:
        return DEFAULT_CODEBLOCKS
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def configure_logging(level: int | None = None) -> None:
    """Route ``docast`` log records through rich. Only the CLI calls this."""
    logging.basicConfig(
        level=get_log_level() if level is None else level,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False, show_path=False)],
        force=True,
    )
