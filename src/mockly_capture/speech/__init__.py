from .transcript import NO_SPEECH, TranscriptBuffer, TranscriptSegment, normalize, resolve_transcript

__all__ = ["NO_SPEECH", "TranscriptBuffer", "TranscriptSegment", "normalize", "resolve_transcript"]
