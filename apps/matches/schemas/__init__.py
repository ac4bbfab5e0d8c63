from .image import ImageBlob
from .stats import ExtractedMatch, ExtractionRequest, MatchSubmission, PlayerStatsRow, coerce_count

__all__ = [
    "ExtractedMatch",
    "ExtractionRequest",
    "ImageBlob",
    "MatchSubmission",
    "PlayerStatsRow",
    "coerce_count",
]
