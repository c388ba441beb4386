from abc import ABC, abstractmethod

from ..models import MetricSnapshot


class SnapshotSink(ABC):
    """
    Abstract Base Class for live snapshot consumers (dashboards, recorders).

    Sinks only ever see snapshots the session accepted; they have no say in
    scoring and a failing sink never affects the session.
    """

    @abstractmethod
    async def start(self) -> None:
        """Acquires the sink's resources (sockets, files)."""
        raise NotImplementedError

    @abstractmethod
    async def send(self, snapshot: MetricSnapshot) -> None:
        """Forwards one snapshot. Must not block for long."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Releases the sink's resources."""
        raise NotImplementedError
