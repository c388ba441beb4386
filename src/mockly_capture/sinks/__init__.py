from .base import SnapshotSink
from .zmq import ZMQSnapshotSink, encode_snapshot

__all__ = ["SnapshotSink", "ZMQSnapshotSink", "encode_snapshot"]
