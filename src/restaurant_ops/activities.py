"""
Temporal activities: thin wrappers delegating to the service layer.

Each approval step of ApprovePendingOrderWorkflow is one activity, so the
Temporal history records exactly which writes happened.

Key points:
  - Activities are where the side-effects live: MongoDB writes through
    OrderLedger and Bot API calls through NotificationDispatcher. They run
    outside the workflow sandbox, so clocks and network I/O are fine here.
  - Each activity takes a single Pydantic model. pydantic_data_converter
    serializes it when the workflow schedules the task and rebuilds it when
    the worker picks it up.
  - They call the same OrderLedger step methods ApprovalSaga uses in-process,
    so both approval paths write identical records.
  - Ledger failures propagate to the workflow, which has retries disabled
    (a replayed insert would duplicate the record). The announcement activity
    never raises: NotificationDispatcher reports delivery as a bool.
"""

import logging

# The function name becomes the activity type registered on the server
# (e.g. "create_approved_order").
from temporalio import activity

from restaurant_ops.domain.models import (
    AnnounceInput,
    CreateOrderInput,
    DeletePendingInput,
    DepartmentOrderInput,
    DepartmentSplit,
    SplitInput,
    TableBillInput,
)
from restaurant_ops.services.factory import ServiceFactory

logger = logging.getLogger(__name__)


@activity.defn
async def create_approved_order(input: CreateOrderInput) -> str:
    """Write the approved Order and return its id.

    The order copies the pending order's table, lines and total, with a fresh
    timestamp and status "approved". Every later step hangs off this id.
    """
    pending = input.pending_order
    logger.info("Activity create_approved_order started for table %s", pending.table_number)
    order_id = await ServiceFactory.get_ledger().record_approved_order(pending)
    logger.info("Activity create_approved_order created order %s", order_id)
    return order_id


@activity.defn
async def split_order_items(input: SplitInput) -> DepartmentSplit:
    """Partition the lines into kitchen and bar.

    Reads the owner's current menu, so it has to be an activity rather than
    in-workflow logic. Lines whose menu item is unknown go to the kitchen.
    """
    logger.info("Activity split_order_items for %d line(s)", len(input.items))
    return await ServiceFactory.get_ledger().department_split(input.owner_id, input.items)


@activity.defn
async def record_department_order(input: DepartmentOrderInput) -> str:
    """Write one department's slice of the order as a pending queue record.

    The workflow only schedules this for departments with at least one line.
    Returns the id of the new kitchen_orders or bar_orders document.
    """
    logger.info("Activity record_department_order (%s) for order %s", input.department, input.order_id)
    return await ServiceFactory.get_ledger().record_department_order(
        input.order_id, input.owner_id, input.department, input.items
    )


@activity.defn
async def add_to_table_bill(input: TableBillInput) -> str:
    """Merge the lines into the table's active bill, opening one if needed.

    Subtotal and tax grow by this order's increment only; the bill id is
    returned either way.
    """
    logger.info("Activity add_to_table_bill for table %s", input.table_number)
    return await ServiceFactory.get_ledger().upsert_table_bill(input.owner_id, input.table_number, input.items)


@activity.defn
async def delete_pending_order(input: DeletePendingInput) -> None:
    """Remove the pending order once everything else has been written.

    Runs last so a failure anywhere earlier leaves the pending order in
    place for staff to see.
    """
    logger.info("Activity delete_pending_order for %s", input.pending_order_id)
    await ServiceFactory.get_ledger().delete_pending_order(input.pending_order_id)


@activity.defn
async def announce_department_order(input: AnnounceInput) -> bool:
    """Post the kitchen or bar ticket to the staff chat.

    Best-effort: delivery problems come back as False instead of an exception,
    so an unreachable Bot API never fails an approval that already committed.
    """
    return await ServiceFactory.get_dispatcher().send_department_order(input.order, input.department)


# Registered together by worker.py and the workflow tests.
ALL_ACTIVITIES = [
    create_approved_order,
    split_order_items,
    record_department_order,
    add_to_table_bill,
    delete_pending_order,
    announce_department_order,
]
