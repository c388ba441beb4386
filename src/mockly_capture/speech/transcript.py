import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

NO_SPEECH = "No speech detected."

_WHITESPACE = re.compile(r"\s+")


@dataclass(slots=True, frozen=True)
class TranscriptSegment:
    text: str
    is_final: bool


def normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


class TranscriptBuffer:
    """
    Accumulates a speech-to-text stream.

    Final segments are committed in arrival order. An interim segment only
    replaces the previous interim one and is dropped as soon as a final
    segment arrives.
    """

    def __init__(self) -> None:
        self._final: list[str] = []
        self._interim = ""

    def feed(self, segment: TranscriptSegment) -> None:
        text = normalize(segment.text)
        if segment.is_final:
            if text:
                self._final.append(text)
            self._interim = ""
        else:
            self._interim = text

    @property
    def committed(self) -> str:
        return " ".join(self._final)

    @property
    def live(self) -> str:
        return normalize(f"{self.committed} {self._interim}")

    def reset(self) -> None:
        self._final.clear()
        self._interim = ""


def resolve_transcript(committed: str, override: str | None = None) -> str:
    """
    Picks the text that goes into the report: the operator's edit when one
    was made, else the committed transcript, else a placeholder.
    """
    if override is not None:
        logger.info("Using operator-edited transcript (%d chars).", len(override))
        text = normalize(override)
    else:
        text = committed
    return text or NO_SPEECH
