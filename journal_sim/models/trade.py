import math
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class Trade(BaseModel):
    """Closed journal trade reduced to the fields the simulator reads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        from_attributes=True,
    )

    id: Optional[str] = None
    pnl: float
    r_multiple: Optional[float] = None
    timestamp: datetime
    strategy: Optional[str] = None
    category: Optional[str] = None

    @field_validator("pnl", "r_multiple")
    @classmethod
    def validate_finite(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not math.isfinite(v):
            raise ValueError("trade outcome must be a finite number")
        return v

    def outcome(self, unit: str, risk_per_r: float = 1.0) -> Optional[float]:
        """Outcome in the requested unit, or None when the trade has no R value."""
        if unit == "r":
            if self.r_multiple is None:
                return None
            return self.r_multiple * risk_per_r
        return self.pnl
