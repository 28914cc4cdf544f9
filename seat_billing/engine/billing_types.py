from __future__ import annotations
from enum import Enum
from typing import Any


class BillingType(str, Enum):
    USAGE_BASED = "usage_based"        # monthly, usage records, billed at period end
    QUANTITY_BASED = "quantity_based"  # yearly, line-item quantity, billed immediately
    UNRECOGNIZED = "unrecognized"      # legacy ('volume') or anything else

    @classmethod
    def from_raw(cls, value: Any) -> "BillingType":
        if value == cls.USAGE_BASED.value:
            return cls.USAGE_BASED
        if value == cls.QUANTITY_BASED.value:
            return cls.QUANTITY_BASED
        return cls.UNRECOGNIZED


class ChargedAt(str, Enum):
    END_OF_PERIOD = "end_of_period"
    IMMEDIATELY = "immediately"
