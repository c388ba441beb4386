from .distributor import FrameDistributor, offer_latest

__all__ = ["FrameDistributor", "offer_latest"]
