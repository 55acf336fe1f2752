"""RFM (Recency-Frequency-Monetary) customer segmentation over order history."""

from .config import RFMSettings
from .pipeline import RFMSegmentationResult, run_rfm_segmentation

__all__ = [
    "RFMSettings",
    "RFMSegmentationResult",
    "run_rfm_segmentation",
]
