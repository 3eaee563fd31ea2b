"""Data models for the duplicate detection system."""

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from subwatch.models.subscription import Subscription


class DuplicateDetectionConfig(BaseModel):
    """Duplicate detection configuration"""

    model_config = ConfigDict(protected_namespaces=())

    service_name_similarity_threshold: float = Field(0.8, ge=0.0, le=1.0)
    amount_similarity_threshold: float = Field(
        5.0, ge=0.0, le=100.0, description="Allowed % difference between amounts"
    )
    time_window_days: float = Field(7.0, ge=0.0)
    normalize_amounts: bool = True


class DuplicateReason(str, Enum):
    """Dominant reason a duplicate was reported."""

    SERVICE_NAME_MATCH = "service_name_match"
    AMOUNT_TIME_MATCH = "amount_time_match"
    FINGERPRINT_MATCH = "fingerprint_match"
    MULTIPLE_FACTORS = "multiple_factors"


class DuplicateDetectionResult(BaseModel):
    """Outcome of checking one subscription against existing records.

    Computed on demand and never persisted.

    Attributes:
        is_duplicate: Whether at least one candidate qualified.
        duplicates: Every qualifying record, in input order.
        confidence: Highest confidence among qualifying records (0-100).
        reason: Reason attached to the highest-confidence match.
    """

    is_duplicate: bool = False
    duplicates: List[Subscription] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    reason: DuplicateReason = DuplicateReason.SERVICE_NAME_MATCH


class DuplicateResolution(BaseModel):
    """Which record of a duplicate group to keep and which to remove."""

    keep: Subscription
    remove: List[Subscription] = Field(default_factory=list)


class DedupStats(BaseModel):
    """Deduplication statistics"""

    model_config = ConfigDict(protected_namespaces=())

    total_checked: int = 0
    duplicates_found: int = 0
    by_reason: Dict[str, int] = Field(default_factory=dict)
    messages_checked: int = 0
    message_duplicates_found: int = 0

    @property
    def dedup_rate(self) -> float:
        """Calculate deduplication rate"""
        if self.total_checked == 0:
            return 0.0
        return self.duplicates_found / self.total_checked
