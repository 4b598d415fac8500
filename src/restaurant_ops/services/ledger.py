"""
Order ledger: persistence and aggregation for menu, orders and bills.

Every read is scoped by `owner_id` (the restaurant account). Failures are
logged and re-raised for the caller to handle; the one exception is
`compute_menu_stats`, which degrades to empty stats so a dashboard can always
render.

Known limitations:
  - `approve_pending_order` is not atomic. A failure part-way leaves the
    earlier steps committed (see ApprovalSaga and ApprovalFailed.state).
  - `upsert_table_bill` is read-then-write with no concurrency check. Two
    simultaneous merges into the same bill can lose one update.
"""

import asyncio
import functools
import logging
from zoneinfo import ZoneInfo

from restaurant_ops.config import Settings
from restaurant_ops.domain import stats as menu_stats
from restaurant_ops.domain.billing import FlatRateTax, TaxStrategy, merge_into_bill, new_bill
from restaurant_ops.domain.models import (
    BillStatus,
    Department,
    DepartmentOrderRecord,
    DepartmentOrderStatus,
    DepartmentSplit,
    MenuItem,
    MenuStats,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    PendingOrder,
    TableBill,
    utcnow,
)
from restaurant_ops.domain.routing import split_order
from restaurant_ops.services.approval import ApprovalSaga
from restaurant_ops.services.store import DocumentStore, ObjectStore

logger = logging.getLogger(__name__)

MENU_ITEMS = "menu_items"
PENDING_ORDERS = "pending_orders"
ORDERS = "orders"
TABLE_BILLS = "table_bills"


def department_collection(department: Department | str) -> str:
    return f"{Department(department).value}_orders"


def logs_failures(action: str):
    """Log any exception from the wrapped coroutine as 'Error <action>' and re-raise it."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception:
                logger.exception("Error %s", action)
                raise

        return wrapper

    return decorator


class OrderLedger:
    def __init__(
        self,
        store: DocumentStore,
        settings: Settings,
        objects: ObjectStore | None = None,
        tax_strategy: TaxStrategy | None = None,
    ) -> None:
        self.store = store
        self.objects = objects
        self.tax_strategy = tax_strategy or FlatRateTax(settings.tax_rate)
        self.tz = ZoneInfo(settings.display_timezone)

    # ── Menu ─────────────────────────────────────────────────────

    @logs_failures("fetching menu items")
    async def list_menu_items(self, owner_id: str) -> list[MenuItem]:
        docs = await self.store.query(MENU_ITEMS, {"owner_id": owner_id})
        return [MenuItem.model_validate(doc) for doc in docs]

    @logs_failures("adding menu item")
    async def create_menu_item(self, item: MenuItem) -> str:
        doc = item.to_document()
        doc["department"] = doc.get("department") or Department.KITCHEN.value
        doc["created_at"] = utcnow()
        return await self.store.insert(MENU_ITEMS, doc)

    @logs_failures("recording menu item view")
    async def record_menu_item_view(self, item_id: str) -> int:
        doc = await self.store.get(MENU_ITEMS, item_id)
        if doc is None:
            raise LookupError(f"Menu item {item_id} not found")
        views = (doc.get("views") or 0) + 1
        await self.store.update(MENU_ITEMS, item_id, {"views": views})
        return views

    # ── Pending orders ───────────────────────────────────────────

    @logs_failures("adding pending order")
    async def create_pending_order(self, pending: PendingOrder) -> str:
        return await self.store.insert(PENDING_ORDERS, pending.to_document())

    @logs_failures("fetching pending order")
    async def get_pending_order(self, pending_order_id: str) -> PendingOrder | None:
        doc = await self.store.get(PENDING_ORDERS, pending_order_id)
        return PendingOrder.model_validate(doc) if doc is not None else None

    @logs_failures("fetching pending orders")
    async def list_pending_orders(self, owner_id: str) -> list[PendingOrder]:
        docs = await self.store.query(PENDING_ORDERS, {"owner_id": owner_id}, order_by="timestamp")
        return [PendingOrder.model_validate(doc) for doc in docs]

    @logs_failures("rejecting pending order")
    async def reject_pending_order(self, pending_order_id: str) -> None:
        await self.store.delete(PENDING_ORDERS, pending_order_id)
        logger.info("Rejected pending order %s", pending_order_id)

    async def approve_pending_order(self, pending_order_id: str, pending: PendingOrder) -> str:
        """Turn a pending order into an approved one and route it.

        Raises ApprovalFailed, carrying the steps already committed.
        """
        saga = ApprovalSaga(self, pending_order_id, pending)
        state = await saga.run()
        return state.order_id

    # ── Approval steps (shared by ApprovalSaga and the Temporal activities) ──

    async def record_approved_order(self, pending: PendingOrder) -> str:
        order = Order(
            owner_id=pending.owner_id,
            table_number=pending.table_number,
            items=pending.items,
            total_amount=pending.total_amount,
            status=OrderStatus.APPROVED,
            payment_status=PaymentStatus.PENDING,
        )
        return await self.create_order(order)

    async def department_split(self, owner_id: str, items: list[OrderItem]) -> DepartmentSplit:
        menu = await self.list_menu_items(owner_id)
        return split_order(items, menu)

    @logs_failures("sending order to department")
    async def record_department_order(
        self,
        order_id: str,
        owner_id: str,
        department: Department | str,
        items: list[OrderItem],
    ) -> str:
        record = DepartmentOrderRecord(order_id=order_id, owner_id=owner_id, department=department, items=items)
        return await self.store.insert(department_collection(department), record.to_document())

    @logs_failures("deleting pending order")
    async def delete_pending_order(self, pending_order_id: str) -> None:
        await self.store.delete(PENDING_ORDERS, pending_order_id)

    # ── Department queues ────────────────────────────────────────

    @logs_failures("fetching department orders")
    async def list_department_orders(self, owner_id: str, department: Department | str) -> list[DepartmentOrderRecord]:
        docs = await self.store.query(
            department_collection(department),
            {"owner_id": owner_id},
            order_by="created_at",
            descending=True,
        )
        records = []
        for doc in docs:
            record = DepartmentOrderRecord.model_validate(doc)
            record.timestamp = record.completed_at or record.created_at
            records.append(record)
        return records

    @logs_failures("marking order as complete")
    async def mark_department_order_complete(self, order_id: str, department: Department | str) -> bool:
        """Returns False (and writes nothing) when no record exists for the order."""
        collection = department_collection(department)
        docs = await self.store.query(collection, {"order_id": order_id}, limit=1)
        if not docs:
            logger.info("No %s record for order %s", collection, order_id)
            return False
        await self.store.update(
            collection,
            docs[0]["id"],
            {"status": DepartmentOrderStatus.COMPLETED.value, "completed_at": utcnow()},
        )
        return True

    # ── Orders ───────────────────────────────────────────────────

    @logs_failures("adding order")
    async def create_order(self, order: Order) -> str:
        doc = order.to_document()
        doc["timestamp"] = utcnow()
        return await self.store.insert(ORDERS, doc)

    @logs_failures("fetching orders")
    async def list_orders(self, owner_id: str) -> list[Order]:
        docs = await self.store.query(ORDERS, {"owner_id": owner_id}, order_by="timestamp", descending=True)
        return [Order.model_validate(doc) for doc in docs]

    @logs_failures("updating order status")
    async def update_order_status(self, order_id: str, status: OrderStatus | str) -> None:
        await self.store.update(ORDERS, order_id, {"status": OrderStatus(status).value})

    @logs_failures("updating payment status")
    async def update_payment_status(self, order_id: str, payment_status: PaymentStatus | str) -> None:
        await self.store.update(ORDERS, order_id, {"payment_status": PaymentStatus(payment_status).value})

    # ── Table bills ──────────────────────────────────────────────

    @logs_failures("fetching table bill")
    async def get_active_table_bill(self, owner_id: str, table_number: str) -> TableBill | None:
        docs = await self.store.query(
            TABLE_BILLS,
            {"owner_id": owner_id, "table_number": table_number, "status": BillStatus.ACTIVE.value},
            limit=1,
        )
        return TableBill.model_validate(docs[0]) if docs else None

    @logs_failures("updating table bill")
    async def upsert_table_bill(self, owner_id: str, table_number: str, items: list[OrderItem]) -> str:
        """Append items to the table's active bill, opening one if needed. Returns the bill id."""
        bill = await self.get_active_table_bill(owner_id, table_number)
        if bill is not None:
            await self.store.update(TABLE_BILLS, bill.id, merge_into_bill(bill, items, self.tax_strategy))
            return bill.id
        bill = new_bill(owner_id, table_number, items, self.tax_strategy)
        bill_id = await self.store.insert(TABLE_BILLS, bill.to_document())
        logger.info("Opened bill %s for table %s", bill_id, table_number)
        return bill_id

    @logs_failures("closing table bill")
    async def close_table_bill(self, owner_id: str, table_number: str) -> TableBill | None:
        bill = await self.get_active_table_bill(owner_id, table_number)
        if bill is None:
            return None
        closed_at = utcnow()
        await self.store.update(
            TABLE_BILLS,
            bill.id,
            {"status": BillStatus.CLOSED.value, "closed_at": closed_at, "updated_at": closed_at},
        )
        return bill.model_copy(update={"status": BillStatus.CLOSED.value, "closed_at": closed_at})

    # ── Reporting ────────────────────────────────────────────────

    async def compute_menu_stats(self, owner_id: str) -> MenuStats:
        """Never raises: any failure yields empty stats."""
        try:
            orders, menu = await asyncio.gather(self.list_orders(owner_id), self.list_menu_items(owner_id))
            return menu_stats.compute_menu_stats(orders, menu, tz=self.tz)
        except Exception:
            logger.exception("Error calculating menu stats")
            return MenuStats.empty()

    # ── Attachments ──────────────────────────────────────────────

    @logs_failures("uploading attachment")
    async def upload_attachment(self, data: bytes, path: str, content_type: str | None = None) -> str:
        if self.objects is None:
            raise RuntimeError("No object store configured for attachments")
        return await self.objects.upload(path, data, content_type)
