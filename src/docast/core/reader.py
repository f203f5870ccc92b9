import re

from docast.core.location import Location
from docast.models import Point, SourceFile


class Reader(Location):
    """Forward cursor over a document with lookahead."""

    def __init__(self, document: str | SourceFile = "", start: Point | None = None) -> None:
        super().__init__(document, start)
        self._index = 0

    @property
    def index(self) -> int:
        return self._index

    @property
    def eof(self) -> bool:
        return self._index >= len(self.document)

    @property
    def char(self) -> str | None:
        return self.peek(0)

    def now(self) -> Point:
        return self.point(self.base_offset + self._index)

    def peek(self, k: int = 1) -> str | None:
        index = self._index + k
        if 0 <= index < len(self.document):
            return self.document[index]
        return None

    def peek_match(self, pattern: str | re.Pattern[str]) -> re.Match[str] | None:
        """Match ``pattern`` anchored at the cursor without advancing."""
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        return pattern.match(self.document, self._index)

    def read(self, k: int = 1) -> str | None:
        assert not self.eof, "cannot read past end of document"
        self._index = min(max(self._index + k, 0), len(self.document))
        return self.char
