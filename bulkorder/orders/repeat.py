"""Repeat-order composer: seed a new order from a previous one's products.

Only product, quantity and custom blend text carry over. Price, supplier and
delivery slots never do; the repeated order is priced and scheduled anew.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from bulkorder.config.engine import EngineConfig
from bulkorder.core.exceptions import LocalValidationError
from bulkorder.orders.types import Order, OrderItem
from bulkorder.orders.values import Number, format_quantity, to_decimal, to_json_number


@dataclass(frozen=True)
class RepeatOverride:
    """Per-item replacement values. None keeps the source value."""

    quantity: Optional[Number] = None
    custom_blend_mix: Optional[str] = None
    exclude: bool = False


@dataclass(frozen=True)
class RepeatLine:
    product_id: int
    quantity: Decimal
    custom_blend_mix: Optional[str] = None
    product_name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"product_id": self.product_id, "quantity": to_json_number(self.quantity)}
        if self.custom_blend_mix:
            body["custom_blend_mix"] = self.custom_blend_mix
        return body


@dataclass(frozen=True)
class RepeatDraft:
    source_order_id: int
    lines: List[RepeatLine]

    def to_payload(self) -> Dict[str, Any]:
        """Body for ``POST /repeat-order/{order_id}``."""
        return {"items": [line.to_payload() for line in self.lines]}


class RepeatComposer:
    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    def compose(
        self,
        order: Order,
        overrides: Optional[Mapping[int, RepeatOverride]] = None,
    ) -> RepeatDraft:
        """Build the repeat payload. *overrides* is keyed by source item id."""
        return self.compose_items(order.id, order.items, overrides)

    def compose_items(
        self,
        source_order_id: int,
        items: Sequence[OrderItem],
        overrides: Optional[Mapping[int, RepeatOverride]] = None,
    ) -> RepeatDraft:
        overrides = overrides or {}
        known = {item.id for item in items}
        errors: List[str] = [
            f"Item {item_id} is not part of the source order."
            for item_id in overrides
            if item_id not in known
        ]
        lines: List[RepeatLine] = []
        for item in items:
            override = overrides.get(item.id, RepeatOverride())
            if override.exclude:
                continue
            quantity = to_decimal(override.quantity, None) if override.quantity is not None else item.quantity
            label = item.product_name or f"Product {item.product_id}"
            if quantity is None or quantity < self.config.min_quantity:
                errors.append(
                    f"{label}: Quantity must be at least {format_quantity(self.config.min_quantity)}."
                )
                continue
            blend = override.custom_blend_mix if override.custom_blend_mix is not None else item.custom_blend_mix
            lines.append(
                RepeatLine(
                    product_id=item.product_id,
                    quantity=quantity,
                    custom_blend_mix=(blend or "").strip() or None,
                    product_name=item.product_name,
                )
            )
        if not lines and not errors:
            errors.append("A repeated order needs at least one item.")
        if errors:
            raise LocalValidationError(errors, details={"order_id": source_order_id})
        return RepeatDraft(source_order_id=source_order_id, lines=lines)
