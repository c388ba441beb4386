import json
import logging

import zmq
import zmq.asyncio

from .base import SnapshotSink
from ..models import MetricSnapshot

logger = logging.getLogger(__name__)


def encode_snapshot(snapshot: MetricSnapshot) -> bytes:
    """
    Wire format: ``<topic> <json>`` where topic is the snapshot kind
    (``gaze``, ``gesture`` or ``volume``), so subscribers can filter with a
    plain prefix subscription.
    """
    payload = json.dumps(snapshot.to_dict(), separators=(",", ":"))
    return snapshot.kind.value.encode() + b" " + payload.encode()


class ZMQSnapshotSink(SnapshotSink):
    """
    Real-time broadcast of analyzer snapshots using ZMQ PUB/SUB.
    """

    def __init__(self, host: str = "tcp://*:5556"):
        """
        Args:
            host: The ZMQ binding address. Default binds to all interfaces on port 5556.
        """
        self.host = host

        self._ctx = zmq.asyncio.Context()
        self._sock = self._ctx.socket(zmq.PUB)

        # Slow subscribers lose snapshots instead of bloating memory
        self._sock.setsockopt(zmq.SNDHWM, 1000)

    async def start(self) -> None:
        """Bind the publisher socket."""
        try:
            self._sock.bind(self.host)
            logger.info(f"ZMQSnapshotSink bound to {self.host}")
        except zmq.ZMQError as e:
            logger.error(f"Failed to bind ZMQSnapshotSink to {self.host}: {e}")
            raise

    async def send(self, snapshot: MetricSnapshot) -> None:
        try:
            await self._sock.send(encode_snapshot(snapshot))
        except zmq.ZMQError as e:
            logger.error(f"ZMQ broadcast failed: {e}")

    async def close(self) -> None:
        """Shut down the ZMQ context."""
        logger.info("Closing ZMQSnapshotSink...")
        # Close immediately, don't wait for unsent messages
        self._sock.close(linger=0)
        self._ctx.term()
