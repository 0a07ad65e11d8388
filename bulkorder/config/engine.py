"""
bulkorder.config.engine – allocation and pricing constants (dataclass + validators).

Env vars: ENGINE_ALLOCATION_EPSILON, ENGINE_REMAINING_PLACES, ENGINE_GST_RATE,
ENGINE_MONEY_PLACES, ENGINE_MIN_QUANTITY, ENGINE_DEFAULT_TRUCK_TYPE,
ENGINE_DEFAULT_DELIVERY_TIME.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{name} must be a decimal number, got {value!r}") from exc


def _validate_positive_decimal(value: Decimal, name: str) -> Decimal:
    if not isinstance(value, Decimal) or not value.is_finite() or value <= 0:
        raise ValueError(f"{name} must be a positive decimal, got {value!r}")
    return value


def _validate_places(value: int, name: str) -> int:
    if not isinstance(value, int) or not 0 <= value <= 8:
        raise ValueError(f"{name} must be an integer between 0 and 8, got {value!r}")
    return value


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunable constants for the allocator and pricing calculator.

    The defaults reproduce the platform's arithmetic; acceptance tests pin them.
    """

    allocation_epsilon: Decimal = Decimal("0.01")
    """Allocation is valid when |quantity - allocated| is strictly below this."""

    remaining_places: int = 4
    """Decimal places the remaining delta is rounded to before comparison."""

    gst_rate: Decimal = Decimal("0.10")

    money_places: int = 2
    """Monetary outputs are rounded half-up to this many places."""

    min_quantity: Decimal = Decimal("0.01")
    """Smallest quantity an item or a newly added slot may carry."""

    default_truck_type: str = "tipper_light"

    default_delivery_time: str = "08:00"
    """Start time used when a load plan is expanded without an explicit time."""

    def __post_init__(self) -> None:
        _validate_positive_decimal(self.allocation_epsilon, "allocation_epsilon")
        _validate_places(self.remaining_places, "remaining_places")
        if not isinstance(self.gst_rate, Decimal) or not Decimal("0") <= self.gst_rate < Decimal("1"):
            raise ValueError(f"gst_rate must be a decimal in [0, 1), got {self.gst_rate!r}")
        _validate_places(self.money_places, "money_places")
        _validate_positive_decimal(self.min_quantity, "min_quantity")
        if not isinstance(self.default_truck_type, str) or not self.default_truck_type.strip():
            raise ValueError("default_truck_type must be a non-empty string")
        if not _HHMM.match(self.default_delivery_time or ""):
            raise ValueError(
                f"default_delivery_time must be HH:MM (24h), got {self.default_delivery_time!r}"
            )

    @property
    def money_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.money_places)

    @property
    def remaining_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.remaining_places)

    @classmethod
    def from_env(cls, **overrides: object) -> "EngineConfig":
        """
        Build config from environment variables. Keyword overrides win over env.
        """
        def _pick(attr: str, env_var: str, default: str) -> Any:
            v = overrides.get(attr)
            if v is not None:
                return v
            return os.environ.get(env_var, default)

        return cls(
            allocation_epsilon=_decimal(_pick("allocation_epsilon", "ENGINE_ALLOCATION_EPSILON", "0.01"), "allocation_epsilon"),
            remaining_places=int(_pick("remaining_places", "ENGINE_REMAINING_PLACES", "4")),
            gst_rate=_decimal(_pick("gst_rate", "ENGINE_GST_RATE", "0.10"), "gst_rate"),
            money_places=int(_pick("money_places", "ENGINE_MONEY_PLACES", "2")),
            min_quantity=_decimal(_pick("min_quantity", "ENGINE_MIN_QUANTITY", "0.01"), "min_quantity"),
            default_truck_type=str(_pick("default_truck_type", "ENGINE_DEFAULT_TRUCK_TYPE", "tipper_light")).strip(),
            default_delivery_time=str(_pick("default_delivery_time", "ENGINE_DEFAULT_DELIVERY_TIME", "08:00")).strip(),
        )


def load_engine_config(**overrides: object) -> EngineConfig:
    """
    Load and validate engine config from environment (with optional overrides).

    Raises ValueError on invalid env/values.
    """
    return EngineConfig.from_env(**overrides)
