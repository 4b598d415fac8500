"""
Department routing for order lines.

Pure functions: the caller loads the owner's menu once and passes the lookup
table in, so the split is deterministic and safe to run inside a workflow.
"""

from collections.abc import Iterable, Mapping

from restaurant_ops.domain.models import Department, DepartmentSplit, MenuItem, OrderItem


def department_lookup(menu_items: Iterable[MenuItem]) -> dict[str, str]:
    """Map menu item id -> department value."""
    return {item.id: Department(item.department).value for item in menu_items if item.id}


def split_by_department(
    items: Iterable[OrderItem],
    lookup: Mapping[str, str],
) -> tuple[list[OrderItem], list[OrderItem]]:
    """Partition order lines into (kitchen, bar), preserving order.

    Lines whose menu item is unknown (deleted, or from another owner) go to the
    kitchen. Returned lines are copies tagged with the department they were
    routed to.
    """
    kitchen: list[OrderItem] = []
    bar: list[OrderItem] = []
    for item in items:
        if lookup.get(item.id) == Department.BAR.value:
            bar.append(item.model_copy(update={"department": Department.BAR.value}))
        else:
            kitchen.append(item.model_copy(update={"department": Department.KITCHEN.value}))
    return kitchen, bar


def split_order(items: Iterable[OrderItem], menu_items: Iterable[MenuItem]) -> DepartmentSplit:
    kitchen, bar = split_by_department(items, department_lookup(menu_items))
    return DepartmentSplit(kitchen=kitchen, bar=bar)
