"""
Canonical fee-estimate snapshot.

Rates are expressed in sat/vB regardless of which upstream source produced
them.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class Fees:
    """Recommended fee rates for a range of confirmation targets."""
    fastest_fee: float          # Next block
    half_hour_fee: float        # ~3 blocks
    hour_fee: float             # ~6 blocks
    economy_fee: float          # ~1 day
    minimum_fee: float          # Mempool purge floor
    endpoint: Optional[str] = None
    fetched_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fastest_fee": self.fastest_fee,
            "half_hour_fee": self.half_hour_fee,
            "hour_fee": self.hour_fee,
            "economy_fee": self.economy_fee,
            "minimum_fee": self.minimum_fee,
            "endpoint": self.endpoint,
            "fetched_at": self.fetched_at.isoformat() if self.fetched_at else None,
        }
