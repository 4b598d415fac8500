"""
Temporal workflow: ApprovePendingOrderWorkflow.

The durable counterpart of ApprovalSaga. Each approval step runs as its own
activity, and the workflow records a StepOutcome after each one, so both the
Temporal history and the `get_status` query show exactly what was committed
when a run fails part-way.

Activities are not retried (maximum_attempts=1): the ledger writes are plain
inserts, and replaying `create_approved_order` would create a second order.
A failed step ends the run with status FAILED; earlier steps stay committed.

Once every ledger step has succeeded, the kitchen and bar tickets are posted
to the staff chat. Those announcements are best-effort and never fail the run.

Workflow code must stay deterministic: no I/O and no system clock. Time comes
from `workflow.now()` and logging goes through `workflow.logger`.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

# ── Sandbox-safe imports ─────────────────────────────────────────────
# The workflow sandbox re-imports modules to police determinism. Pydantic and
# our model modules trip its checks, so they are passed through unchanged.
# Nothing here does I/O at import time; the activities are only referenced
# by name when scheduling.
with workflow.unsafe.imports_passed_through():
    from restaurant_ops.activities import (
        add_to_table_bill,
        announce_department_order,
        create_approved_order,
        delete_pending_order,
        record_department_order,
        split_order_items,
    )
    from restaurant_ops.domain.models import (
        AnnounceInput,
        ApprovalRequest,
        ApprovalResult,
        ApprovalState,
        ApprovalStatus,
        ApprovalStep,
        CreateOrderInput,
        DeletePendingInput,
        Department,
        DepartmentOrderInput,
        Order,
        SplitInput,
        StepOutcome,
        TableBillInput,
    )


@workflow.defn
class ApprovePendingOrderWorkflow:
    """Approves one pending order.

    Execution flow:
        1. create_approved_order    → orders
        2. split_order_items        → kitchen/bar partition
        3. record_department_order  → one record per non-empty department
        4. add_to_table_bill        → running bill for the table
        5. delete_pending_order
        6. announce_department_order (optional, best-effort)

    Supports the query `get_status` for step-by-step progress.
    """

    def __init__(self) -> None:
        # Set when run() starts; queries before that see {"started": False}.
        self.state: ApprovalState | None = None

    # ── Query ─────────────────────────────────────────────────────
    # Read-only view of the saga state. Queries must not mutate anything, so
    # this builds a fresh dict on each call.

    @workflow.query
    def get_status(self) -> dict:
        if self.state is None:
            return {"started": False}
        return {
            "started": True,
            "pending_order_id": self.state.pending_order_id,
            "order_id": self.state.order_id,
            "completed_steps": self.state.completed_steps,
            "failed_step": self.state.failed_step,
            "department_record_ids": dict(self.state.department_record_ids),
        }

    # ── Helpers ──────────────────────────────────────────────────

    def _record(self, step: ApprovalStep, succeeded: bool, error: str | None = None) -> None:
        """Append a StepOutcome stamped with workflow time (replay-safe)."""
        self.state.outcomes.append(StepOutcome(step=step, succeeded=succeeded, error=error, at=workflow.now()))

    def _result(self, status: ApprovalStatus, announced: list[str] | None = None) -> ApprovalResult:
        """Build an ApprovalResult snapshot from current state."""
        return ApprovalResult(
            pending_order_id=self.state.pending_order_id,
            status=status,
            order_id=self.state.order_id,
            completed_steps=self.state.completed_steps,
            failed_step=self.state.failed_step,
            announced=announced or [],
        )

    # ── Run ──────────────────────────────────────────────────────

    @workflow.run
    async def run(self, req: ApprovalRequest) -> ApprovalResult:
        pending = req.pending_order
        self.state = ApprovalState(pending_order_id=req.pending_order_id)

        # One attempt per activity. Every ledger step is an insert or a
        # read-modify-write, so a retry after a lost response could write twice.
        # start_to_close_timeout bounds a single attempt against MongoDB or
        # the Bot API.
        activity_opts = {
            "start_to_close_timeout": timedelta(seconds=30),
            "retry_policy": RetryPolicy(maximum_attempts=1),
        }

        workflow.logger.info(
            "Approving pending order %s for table %s (%d lines)",
            req.pending_order_id,
            pending.table_number,
            len(pending.items),
        )

        # `step` always names the step in flight, so the except block knows
        # which one to record as failed.
        step = ApprovalStep.CREATE_ORDER
        try:
            # execute_activity suspends the workflow until the activity
            # returns; its result is recorded in history and replayed from there.
            self.state.order_id = await workflow.execute_activity(
                create_approved_order, CreateOrderInput(pending_order=pending), **activity_opts
            )
            self._record(step, True)

            step = ApprovalStep.SPLIT_DEPARTMENTS
            self.state.split = await workflow.execute_activity(
                split_order_items, SplitInput(owner_id=pending.owner_id, items=pending.items), **activity_opts
            )
            self._record(step, True)

            # Fixed kitchen-then-bar order keeps replays deterministic.
            step = ApprovalStep.RECORD_DEPARTMENT_ORDERS
            for department in (Department.KITCHEN, Department.BAR):
                items = self.state.split.items_for(department)
                if not items:
                    continue
                self.state.department_record_ids[department.value] = await workflow.execute_activity(
                    record_department_order,
                    DepartmentOrderInput(
                        order_id=self.state.order_id,
                        owner_id=pending.owner_id,
                        department=department,
                        items=items,
                    ),
                    **activity_opts,
                )
            self._record(step, True)

            step = ApprovalStep.UPDATE_TABLE_BILL
            await workflow.execute_activity(
                add_to_table_bill,
                TableBillInput(owner_id=pending.owner_id, table_number=pending.table_number, items=pending.items),
                **activity_opts,
            )
            self._record(step, True)

            step = ApprovalStep.DELETE_PENDING_ORDER
            await workflow.execute_activity(
                delete_pending_order, DeletePendingInput(pending_order_id=req.pending_order_id), **activity_opts
            )
            self._record(step, True)

        except Exception as exc:
            # An activity failure arrives here as ActivityError. Returning a
            # FAILED result completes the workflow normally, with the state
            # showing which writes are already committed.
            self._record(step, False, str(exc))
            workflow.logger.exception("Approval of %s failed at %s", req.pending_order_id, step.value)
            return self._result(ApprovalStatus.FAILED)

        announced: list[str] = []
        if req.announce:
            # Only departments that got a queue record get a ticket.
            for department in self.state.department_record_ids:
                ticket = Order(
                    id=self.state.order_id,
                    owner_id=pending.owner_id,
                    table_number=pending.table_number,
                    items=self.state.split.items_for(department),
                    total_amount=pending.total_amount,
                    timestamp=workflow.now(),
                )
                try:
                    delivered = await workflow.execute_activity(
                        announce_department_order,
                        AnnounceInput(order=ticket, department=department),
                        **activity_opts,
                    )
                except Exception:
                    # A timed-out announcement is not worth failing a committed approval.
                    workflow.logger.warning("Could not announce %s ticket for %s", department, self.state.order_id)
                    delivered = False
                if delivered:
                    announced.append(department)

        workflow.logger.info("Pending order %s approved as order %s", req.pending_order_id, self.state.order_id)
        return self._result(ApprovalStatus.COMPLETED, announced)
