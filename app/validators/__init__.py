"""
app/validators package marker.
"""

from app.validators.row_validator import (
    CampaignRowValidator,
    DiscardReason,
    discarded_percentage,
)

__all__ = [
    "CampaignRowValidator",
    "DiscardReason",
    "discarded_percentage",
]
