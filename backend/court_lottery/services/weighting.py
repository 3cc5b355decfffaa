"""
Lottery weight: base weight by tier, damped by recent usage.

    weight = base(tier) / (1 + usage_count * decay)
"""

from court_lottery.core.config import get_settings
from court_lottery.models.user import AccountTier


def base_weight(tier: str | AccountTier) -> float:
    settings = get_settings()
    if AccountTier(tier) is AccountTier.PRIORITY:
        return settings.PRIORITY_BASE_WEIGHT
    return settings.STANDARD_BASE_WEIGHT


def calculate_weight(tier: str | AccountTier, usage_count: int, decay: float | None = None) -> float:
    if usage_count < 0:
        raise ValueError("usage_count must be non-negative")
    decay = get_settings().USAGE_DECAY if decay is None else decay
    return base_weight(tier) / (1 + usage_count * decay)
