from __future__ import annotations

from typing import Optional, Literal
from pydantic import BaseModel, Field


# -------------------------
# Seat changes
# -------------------------
class SeatChangeRequest(BaseModel):
    quantity: int = Field(..., ge=0)   # total desired seats, not a delta


class SeatChangeResult(BaseModel):
    success: bool = True
    billingType: Literal["usage_based", "quantity_based"]
    chargedAt: Literal["end_of_period", "immediately"]
    currentSeats: int                        # quantity confirmed by the billing API
    message: str
    prorationAmount: Optional[float] = None  # quantity_based only
    daysRemaining: Optional[int] = None      # quantity_based only


# -------------------------
# Proration
# -------------------------
class ProrationResult(BaseModel):
    amount: float = 0.0
    seatsAdded: int = Field(0, ge=0)
    daysRemaining: int = 0
    yearlyPricePerSeat: Optional[float] = None
    message: str


# -------------------------
# Errors
# -------------------------
class ErrorDetail(BaseModel):
    type: str
    message: str
    upstreamStatus: Optional[int] = None
