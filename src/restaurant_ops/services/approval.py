"""
Pending-order approval as an explicit list of steps.

    1. create_order              -> orders
    2. split_departments         (reads menu_items)
    3. record_department_orders  -> kitchen_orders / bar_orders
    4. update_table_bill         -> table_bills
    5. delete_pending_order      -> pending_orders

Each step appends a StepOutcome to the saga's ApprovalState. The store offers
no multi-document transaction, so a failing step does not undo the ones before
it; the saga stops, records the failure and raises ApprovalFailed with the
state attached. Compensation, if ever added, would walk `state.outcomes`
backwards.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from restaurant_ops.domain.models import ApprovalState, ApprovalStep, Department, PendingOrder, StepOutcome

if TYPE_CHECKING:
    from restaurant_ops.services.ledger import OrderLedger

logger = logging.getLogger(__name__)


class ApprovalFailed(Exception):
    """An approval step raised. `state` lists what was committed before it."""

    def __init__(self, step: ApprovalStep, state: ApprovalState) -> None:
        super().__init__(f"Approval of pending order {state.pending_order_id} failed at step {step.value}")
        self.step = step
        self.state = state


class ApprovalSaga:
    def __init__(self, ledger: "OrderLedger", pending_order_id: str, pending: PendingOrder) -> None:
        self.ledger = ledger
        self.pending = pending
        self.state = ApprovalState(pending_order_id=pending_order_id)

    @property
    def steps(self) -> list[tuple[ApprovalStep, Callable[[], Awaitable[None]]]]:
        return [
            (ApprovalStep.CREATE_ORDER, self._create_order),
            (ApprovalStep.SPLIT_DEPARTMENTS, self._split_departments),
            (ApprovalStep.RECORD_DEPARTMENT_ORDERS, self._record_department_orders),
            (ApprovalStep.UPDATE_TABLE_BILL, self._update_table_bill),
            (ApprovalStep.DELETE_PENDING_ORDER, self._delete_pending_order),
        ]

    async def run(self) -> ApprovalState:
        for step, action in self.steps:
            try:
                await action()
            except Exception as exc:
                self.state.outcomes.append(StepOutcome(step=step, succeeded=False, error=repr(exc)))
                logger.exception(
                    "Approval of %s failed at %s after %s",
                    self.state.pending_order_id,
                    step.value,
                    self.state.completed_steps,
                )
                raise ApprovalFailed(step, self.state) from exc
            self.state.outcomes.append(StepOutcome(step=step, succeeded=True))
        logger.info("Pending order %s approved as order %s", self.state.pending_order_id, self.state.order_id)
        return self.state

    # ── Steps ────────────────────────────────────────────────────

    async def _create_order(self) -> None:
        self.state.order_id = await self.ledger.record_approved_order(self.pending)

    async def _split_departments(self) -> None:
        self.state.split = await self.ledger.department_split(self.pending.owner_id, self.pending.items)

    async def _record_department_orders(self) -> None:
        for department in (Department.KITCHEN, Department.BAR):
            items = self.state.split.items_for(department)
            if not items:
                continue
            record_id = await self.ledger.record_department_order(
                self.state.order_id, self.pending.owner_id, department, items
            )
            self.state.department_record_ids[department.value] = record_id

    async def _update_table_bill(self) -> None:
        await self.ledger.upsert_table_bill(self.pending.owner_id, self.pending.table_number, self.pending.items)

    async def _delete_pending_order(self) -> None:
        await self.ledger.delete_pending_order(self.state.pending_order_id)
