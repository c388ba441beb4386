from typing import List

from .configs import AppSettings
from .sinks import SnapshotSink, ZMQSnapshotSink


def create_session_sinks(settings: AppSettings) -> List[SnapshotSink]:
    """
    Creates fresh sink instances for a new capture session.
    """
    sinks = []

    # ZMQ
    if settings.zmq.enabled:
        sinks.append(ZMQSnapshotSink(host=settings.zmq.host))

    return sinks
