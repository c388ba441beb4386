class CaptureError(Exception):
    """Base class for capture-session failures."""


class CaptureUnavailable(CaptureError):
    """
    The camera or microphone could not be obtained (missing device, denied
    permission). Fatal to the session and raised before any analyzer starts.
    """

    def __init__(self, message: str = "Failed to access camera/microphone. Please check permissions."):
        super().__init__(message)


class SessionStateError(CaptureError):
    """A lifecycle call was made in a state that does not allow it."""
