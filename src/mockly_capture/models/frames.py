import math
from dataclasses import dataclass
from typing import Any, Optional

Point = tuple[float, float]


@dataclass(slots=True, frozen=True)
class FrameSample:
    """
    One video frame as handed out by a frame source.

    ``image`` is whatever the capture backend produces; analyzers never look
    inside it, they only pass it to a landmark provider.
    """
    index: int
    timestamp: float  # monotonic seconds
    width: int
    height: int
    image: Any = None

    @property
    def center(self) -> Point:
        return (self.width / 2, self.height / 2)


@dataclass(slots=True, frozen=True)
class AudioFrame:
    """Unsigned 8-bit time-domain samples; 128 is the silence center."""
    timestamp: float
    samples: bytes


@dataclass(slots=True, frozen=True)
class LandmarkSet:
    """Ordered (x, y) landmark points in frame-pixel space. Empty when nothing was detected."""
    points: tuple[Point, ...] = ()

    @classmethod
    def of(cls, points) -> "LandmarkSet":
        return cls(tuple((float(x), float(y)) for x, y in points))

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return not self.points

    def point(self, index: int) -> Optional[Point]:
        if 0 <= index < len(self.points):
            return self.points[index]
        return None


def distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def midpoint(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)


class StreamEnd:
    """Marker put on a frame, audio or snapshot queue after its last item."""
    __slots__ = ()

    def __repr__(self) -> str:
        return "<StreamEnd>"


STREAM_END = StreamEnd()
