"""
Read-only order views handed to the promotions engine by the pricing pipeline.

The engine never touches ORM orders directly: callers build these snapshots
from whatever storage they use, so calculation stays pure and repeatable.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from apps.common.types import Money


@dataclass(frozen=True)
class LineItemSnapshot:
    """A single order line as seen at pricing time."""

    id: str
    product_id: str
    unit_price: Money
    quantity: int = 1
    taxon_ids: frozenset[str] = frozenset()
    properties: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(f"Line item quantity cannot be negative: {self.quantity}")

    @property
    def currency(self) -> str:
        return self.unit_price.currency

    @property
    def subtotal(self) -> Money:
        return self.unit_price.times(self.quantity)

    def get_property(self, name: str) -> str | None:
        """Product attribute lookup, case-insensitive on the attribute name."""
        if name in self.properties:
            return self.properties[name]
        wanted = name.casefold()
        for key, value in self.properties.items():
            if key.casefold() == wanted:
                return value
        return None


@dataclass(frozen=True)
class OrderSnapshot:
    """Order contents plus the customer context rules need."""

    id: str
    currency: str
    line_items: tuple[LineItemSnapshot, ...] = ()
    customer_id: str | None = None
    # Completed orders placed by the customer before this one
    completed_order_count: int = 0
    customer_groups: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        for item in self.line_items:
            if item.currency != self.currency:
                raise ValueError(
                    f"Line item {item.id} is priced in {item.currency}, order currency is {self.currency}"
                )

    @property
    def subtotal(self) -> Money:
        total = Money.zero(self.currency)
        for item in self.line_items:
            total = total + item.subtotal
        return total

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.line_items)

    @property
    def is_empty(self) -> bool:
        return not self.line_items

    @property
    def is_guest(self) -> bool:
        return not self.customer_id
