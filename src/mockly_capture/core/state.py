from enum import Enum, auto


class SessionState(Enum):
    """
    Lifecycle of one recorded answer. DONE is terminal; a new answer needs a
    new aggregator.
    """
    IDLE = auto() # Nothing captured yet.
    CAPTURING = auto() # Analyzers running, session timer armed.
    FINALIZING = auto() # Metrics frozen, waiting for operator confirmation.
    DONE = auto() # Report produced and delivered.
