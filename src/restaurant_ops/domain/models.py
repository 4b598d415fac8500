"""
Domain models for menu, orders, department queues and table bills.

All models use Pydantic v2 BaseModel. They are stored as MongoDB documents
(via `model_dump(exclude={"id"})`) and travel as Temporal payloads through the
pydantic_data_converter configured on the worker and the client.

Enums inherit from (str, Enum) and every model sets `use_enum_values=True`, so
documents hold plain strings ("bar", not Department.BAR) and BSON encoding
never sees an Enum instance.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Department(str, Enum):
    """Staff queue an order line is routed to."""

    KITCHEN = "kitchen"
    BAR = "bar"


class OrderStatus(str, Enum):
    APPROVED = "approved"
    PREPARING = "preparing"
    SERVED = "served"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REJECTED = "rejected"


class BillStatus(str, Enum):
    ACTIVE = "active"  # At most one per (owner, table)
    CLOSED = "closed"


class DepartmentOrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"


class Record(BaseModel):
    """Base for everything persisted in the document store."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    id: str | None = None  # Assigned by the store on insert

    def to_document(self) -> dict:
        return self.model_dump(exclude={"id"})


# ── Menu ─────────────────────────────────────────────────────────────


class MenuItem(Record):
    owner_id: str
    name: str
    price: float = Field(..., ge=0)
    department: Department = Department.KITCHEN
    views: int = 0
    category: str | None = None
    description: str | None = None
    image_url: str | None = None
    available: bool = True
    created_at: datetime | None = None

    @field_validator("department", mode="before")
    @classmethod
    def _default_department(cls, value):
        # Missing or null means kitchen.
        return value or Department.KITCHEN

    @field_validator("views", mode="before")
    @classmethod
    def _default_views(cls, value):
        return value or 0


# ── Orders ───────────────────────────────────────────────────────────


class OrderItem(BaseModel):
    """One line of an order. `id` references the MenuItem it was ordered from."""

    model_config = ConfigDict(use_enum_values=True, frozen=True)

    id: str
    name: str  # Denormalized copy of the menu item name
    quantity: int = Field(..., ge=1)
    total: float = Field(..., ge=0)  # Line total, price * quantity
    department: Department | None = None  # Tag copied from the menu, if known


class PendingOrder(Record):
    """A submitted order waiting for staff approval."""

    owner_id: str
    table_number: str
    items: list[OrderItem]
    total_amount: float = Field(..., ge=0)
    timestamp: datetime = Field(default_factory=utcnow)


class Order(Record):
    owner_id: str
    table_number: str
    items: list[OrderItem]
    total_amount: float = Field(..., ge=0)
    status: OrderStatus = OrderStatus.APPROVED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    timestamp: datetime = Field(default_factory=utcnow)


class DepartmentOrderRecord(Record):
    """The department-filtered slice of an approved order."""

    order_id: str
    owner_id: str
    department: Department
    items: list[OrderItem]
    status: DepartmentOrderStatus = DepartmentOrderStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    timestamp: datetime | None = None  # Filled on read: completed_at or created_at

    def to_document(self) -> dict:
        return self.model_dump(exclude={"id", "timestamp"})


# ── Billing ──────────────────────────────────────────────────────────


class TableBill(Record):
    """Running tally for one table across several approved orders."""

    owner_id: str
    table_number: str
    items: list[OrderItem] = Field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    total: float = 0.0  # Always subtotal + tax
    status: BillStatus = BillStatus.ACTIVE
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    closed_at: datetime | None = None


# ── Reporting ────────────────────────────────────────────────────────


class PopularItem(BaseModel):
    id: str
    name: str
    orders: int  # Cumulative quantity ordered


class MonthlyRevenue(BaseModel):
    month: str  # "YYYY-MM"
    revenue: float


class MenuStats(BaseModel):
    """Derived on demand from an owner's orders and menu; never stored."""

    total_orders: int = 0
    total_revenue: float = 0.0
    total_views: int = 0
    popular_items: list[PopularItem] = Field(default_factory=list)
    recent_orders: list[Order] = Field(default_factory=list)
    monthly_revenue: list[MonthlyRevenue] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "MenuStats":
        return cls()


class ItemCount(BaseModel):
    name: str
    count: int


class DailySummary(BaseModel):
    total_orders: int = 0
    total_revenue: float = 0.0
    most_ordered_items: list[ItemCount] = Field(default_factory=list)
    most_active_table: str = "-"
    waiter_calls: int = 0
    bill_requests: int = 0


# ── Approval saga ────────────────────────────────────────────────────


class ApprovalStep(str, Enum):
    """Steps of the pending-order approval, in execution order."""

    CREATE_ORDER = "create_order"
    SPLIT_DEPARTMENTS = "split_departments"
    RECORD_DEPARTMENT_ORDERS = "record_department_orders"
    UPDATE_TABLE_BILL = "update_table_bill"
    DELETE_PENDING_ORDER = "delete_pending_order"


class StepOutcome(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    step: ApprovalStep
    succeeded: bool
    error: str | None = None
    at: datetime = Field(default_factory=utcnow)


class DepartmentSplit(BaseModel):
    kitchen: list[OrderItem] = Field(default_factory=list)
    bar: list[OrderItem] = Field(default_factory=list)

    def items_for(self, department: Department | str) -> list[OrderItem]:
        return self.bar if department == Department.BAR else self.kitchen


class ApprovalState(BaseModel):
    """What an approval run has committed so far.

    There is no rollback, so after a failure this is the authoritative list
    of records that exist.
    """

    pending_order_id: str
    order_id: str | None = None
    split: DepartmentSplit | None = None
    department_record_ids: dict[str, str] = Field(default_factory=dict)
    outcomes: list[StepOutcome] = Field(default_factory=list)

    @property
    def completed_steps(self) -> list[str]:
        return [o.step for o in self.outcomes if o.succeeded]

    @property
    def failed_step(self) -> str | None:
        return next((o.step for o in self.outcomes if not o.succeeded), None)


# ── Workflow input / output ──────────────────────────────────────────


class ApprovalStatus(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ApprovalRequest(BaseModel):
    """Input to ApprovePendingOrderWorkflow."""

    pending_order_id: str = Field(..., min_length=1)
    pending_order: PendingOrder
    announce: bool = True  # Post kitchen/bar tickets to the chat afterwards


class ApprovalResult(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    pending_order_id: str
    status: ApprovalStatus
    order_id: str | None = None
    completed_steps: list[ApprovalStep] = Field(default_factory=list)
    failed_step: ApprovalStep | None = None
    announced: list[Department] = Field(default_factory=list)


# ── Activity payload models ──────────────────────────────────────────


class CreateOrderInput(BaseModel):
    pending_order: PendingOrder


class SplitInput(BaseModel):
    owner_id: str
    items: list[OrderItem]


class DepartmentOrderInput(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    order_id: str
    owner_id: str
    department: Department
    items: list[OrderItem]


class TableBillInput(BaseModel):
    owner_id: str
    table_number: str
    items: list[OrderItem]


class DeletePendingInput(BaseModel):
    pending_order_id: str


class AnnounceInput(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    order: Order
    department: Department
