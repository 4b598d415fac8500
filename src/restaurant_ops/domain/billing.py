"""
Table bill arithmetic (Strategy pattern for tax).

The ledger holds a `TaxStrategy` and asks it for the tax on each increment of
items added to a bill. Tax is accumulated per increment: merging items worth
S2 into a bill with tax T1 yields T1 + tax(S2). It is never recomputed over the
cumulative subtotal, so a rate change only affects orders merged afterwards.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from restaurant_ops.domain.models import OrderItem, TableBill, utcnow

DEFAULT_TAX_RATE = 0.15


class TaxStrategy(Protocol):
    """Anything with a `tax(subtotal) -> float` method."""

    def tax(self, subtotal: float) -> float: ...


class FlatRateTax:
    """Single percentage applied to every increment."""

    def __init__(self, rate: float = DEFAULT_TAX_RATE) -> None:
        self.rate = rate

    def tax(self, subtotal: float) -> float:
        return subtotal * self.rate


def items_subtotal(items: Iterable[OrderItem]) -> float:
    return sum(item.total for item in items)


def new_bill(
    owner_id: str,
    table_number: str,
    items: list[OrderItem],
    tax_strategy: TaxStrategy,
    now: datetime | None = None,
) -> TableBill:
    """Seed an active bill from the first batch of items."""
    now = now or utcnow()
    subtotal = items_subtotal(items)
    tax = tax_strategy.tax(subtotal)
    return TableBill(
        owner_id=owner_id,
        table_number=table_number,
        items=list(items),
        subtotal=subtotal,
        tax=tax,
        total=subtotal + tax,
        created_at=now,
        updated_at=now,
    )


def merge_into_bill(
    bill: TableBill,
    items: list[OrderItem],
    tax_strategy: TaxStrategy,
    now: datetime | None = None,
) -> dict:
    """Return the fields to write back after appending `items` to `bill`."""
    increment = items_subtotal(items)
    subtotal = bill.subtotal + increment
    tax = bill.tax + tax_strategy.tax(increment)
    return {
        "items": [item.model_dump() for item in [*bill.items, *items]],
        "subtotal": subtotal,
        "tax": tax,
        "total": subtotal + tax,
        "updated_at": now or utcnow(),
    }
