import re
from bisect import bisect_right

from docast.models import Point, SourceFile

_LINE_TERMINATOR_RE = re.compile(r"[\r\n]")


class Location:
    """Convert between ``(line, column)`` points and character offsets.

    ``\\r`` and ``\\n`` each end a line, so ``\\r\\n`` counts as two line
    breaks. When ``start`` is given, the document is treated as a slice of a
    larger one beginning at that point: returned points are shifted by it,
    and offsets passed in or returned are absolute.
    """

    def __init__(self, document: str | SourceFile = "", start: Point | None = None) -> None:
        self.document = str(document)
        self.start = Point(line=1, column=1, offset=0) if start is None else start.model_copy()
        self._line_starts = [0, *(m.end() for m in _LINE_TERMINATOR_RE.finditer(self.document))]

    @property
    def base_offset(self) -> int:
        return self.start.offset

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def point(self, offset: object) -> Point:
        """Return the point at ``offset``, or ``{-1, -1, offset}`` if there is none."""
        if not isinstance(offset, int) or isinstance(offset, bool):
            return Point.model_construct(line=-1, column=-1, offset=offset)
        local = offset - self.base_offset
        if local < 0 or local > len(self.document):
            return Point(line=-1, column=-1, offset=offset)

        index = bisect_right(self._line_starts, local) - 1
        first_column = self.start.column if index == 0 else 1
        return Point(
            line=self.start.line + index,
            column=first_column + local - self._line_starts[index],
            offset=offset,
        )

    def offset(self, point: Point) -> int:
        """Return the offset of ``point``, or ``-1`` if no character has that location."""
        index = point.line - self.start.line
        if point.line < 1 or point.column < 1 or index < 0 or index >= len(self._line_starts):
            return -1

        first_column = self.start.column if index == 0 else 1
        if point.column < first_column:
            return -1

        if index + 1 < len(self._line_starts):
            line_end = self._line_starts[index + 1] - 1
        else:
            line_end = len(self.document)

        local = self._line_starts[index] + point.column - first_column
        if local > line_end:
            return -1
        return local + self.base_offset

    def line_start(self, line: int) -> int:
        """Return the absolute offset of the first character on ``line``, or ``-1``."""
        index = line - self.start.line
        if index < 0 or index >= len(self._line_starts):
            return -1
        return self._line_starts[index] + self.base_offset
