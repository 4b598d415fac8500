"""Menu statistics derived from an owner's order history."""

from collections.abc import Sequence
from datetime import datetime, timezone, tzinfo

from restaurant_ops.domain.models import MenuItem, MenuStats, MonthlyRevenue, Order, PopularItem

POPULAR_ITEMS_LIMIT = 5
RECENT_ORDERS_LIMIT = 10
REVENUE_MONTHS = 6


def month_key(moment: datetime, tz: tzinfo = timezone.utc) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).strftime("%Y-%m")


def monthly_revenue(
    orders: Sequence[Order],
    months: int = REVENUE_MONTHS,
    tz: tzinfo = timezone.utc,
) -> list[MonthlyRevenue]:
    """Revenue per calendar month, oldest first, keeping the last `months` that have orders."""
    totals: dict[str, float] = {}
    for order in orders:
        key = month_key(order.timestamp, tz)
        totals[key] = totals.get(key, 0.0) + order.total_amount
    ordered = sorted(totals.items())
    return [MonthlyRevenue(month=month, revenue=revenue) for month, revenue in ordered[-months:]]


def popular_items(
    orders: Sequence[Order],
    menu_items: Sequence[MenuItem],
    limit: int = POPULAR_ITEMS_LIMIT,
) -> list[PopularItem]:
    names = {item.id: item.name for item in menu_items}
    counts: dict[str, PopularItem] = {}
    for order in orders:
        for line in order.items:
            entry = counts.get(line.id)
            if entry is None:
                # Prefer the current menu name; fall back to the copy on the order line.
                entry = counts[line.id] = PopularItem(id=line.id, name=names.get(line.id, line.name), orders=0)
            entry.orders += line.quantity
    ranked = sorted(counts.values(), key=lambda p: p.orders, reverse=True)
    return ranked[:limit]


def compute_menu_stats(
    orders: Sequence[Order],
    menu_items: Sequence[MenuItem],
    tz: tzinfo = timezone.utc,
) -> MenuStats:
    """Build MenuStats. `orders` must already be sorted newest first."""
    return MenuStats(
        total_orders=len(orders),
        total_revenue=sum(order.total_amount for order in orders),
        total_views=sum(item.views or 0 for item in menu_items),
        popular_items=popular_items(orders, menu_items),
        recent_orders=list(orders[:RECENT_ORDERS_LIMIT]),
        monthly_revenue=monthly_revenue(orders, tz=tz),
    )
