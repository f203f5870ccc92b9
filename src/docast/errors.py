from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docast.core.tokens import Token
    from docast.models import Point


class DocastError(Exception):
    """Base class for errors raised while building a docblock tree."""


class DocastSyntaxError(DocastError, ValueError):
    """A token sequence that does not fit the docblock grammar."""

    def __init__(self, message: str, token: "Token | None" = None) -> None:
        self.token = token
        self.point: "Point | None" = token.start if token is not None else None
        if self.point is not None:
            message = f"{self.point.line}:{self.point.column}: {message}"
        super().__init__(message)
