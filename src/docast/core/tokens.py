from dataclasses import dataclass
from enum import Enum

from docast.models import Point, Position


class TokenKind(str, Enum):
    CLOSER = "closer"
    DELIMITER = "delimiter"
    EOF = "eof"
    MARKDOWN = "markdown"
    OPENER = "opener"
    TAG = "tag"
    TYPE_EXPRESSION = "typeExpression"
    WHITESPACE = "whitespace"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    start: Point
    end: Point
    text: str

    @property
    def position(self) -> Position:
        return Position(start=self.start.model_copy(), end=self.end.model_copy())
