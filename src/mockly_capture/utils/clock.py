import math


def round_half_up(value: float) -> int:
    """Rounds .5 away from zero for positive values, the way percentages are displayed."""
    return int(math.floor(value + 0.5))


def format_mmss(elapsed_s: float) -> str:
    """Formats elapsed seconds as a zero-padded ``MM:SS`` label."""
    total = max(0, int(elapsed_s))
    minutes, seconds = divmod(total, 60)
    return f"{minutes:02d}:{seconds:02d}"


def parse_mmss(label: str) -> int:
    """
    Parses a ``MM:SS`` label back into seconds.

    Raises:
        ValueError: if the label is not two colon-separated integers.
    """
    parts = label.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid duration label: {label!r}")
    minutes, seconds = (int(p) for p in parts)
    if minutes < 0 or not 0 <= seconds < 60:
        raise ValueError(f"Invalid duration label: {label!r}")
    return minutes * 60 + seconds
