from .clock import format_mmss, parse_mmss, round_half_up
from .logging import ThrottledLogger

__all__ = ["format_mmss", "parse_mmss", "round_half_up", "ThrottledLogger"]
