import time
import logging


class ThrottledLogger:
    """
    Collapses bursts of identical-cause warnings (per-frame detection misses,
    dropped frames) into one line per interval, prefixed with the count.
    """
    def __init__(self, logger: logging.Logger, interval_sec: float = 5.0) -> None:
        self._logger = logger
        self._interval = interval_sec
        self._last_log_time = float("-inf")
        self._counter = 0

    @property
    def suppressed(self) -> int:
        return self._counter

    def warning(self, message: str, *args, **kwargs):
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self._log(logging.ERROR, message, *args, **kwargs)

    def _log(self, level: int, message: str, *args, **kwargs):
        self._counter += 1
        now = time.monotonic()

        if now - self._last_log_time >= self._interval:
            self._logger.log(level, "[%d] " + message, self._counter, *args, **kwargs)
            self._last_log_time = now
            self._counter = 0
