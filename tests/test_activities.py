"""
Tests for the Temporal activities, run in temporalio's ActivityEnvironment
(no server needed). ServiceFactory's class-level cache is pointed at the
in-memory ledger and a mock-transport dispatcher.
"""

import pytest
from temporalio.testing import ActivityEnvironment

from restaurant_ops import activities
from restaurant_ops.domain.models import (
    AnnounceInput,
    CreateOrderInput,
    DeletePendingInput,
    DepartmentOrderInput,
    Order,
    SplitInput,
    TableBillInput,
)
from restaurant_ops.services.factory import ServiceFactory


@pytest.fixture(autouse=True)
def services(ledger, dispatcher):
    ServiceFactory._ledger = ledger
    ServiceFactory._dispatcher = dispatcher
    yield
    ServiceFactory.reset()


@pytest.fixture
def env():
    return ActivityEnvironment()


async def test_approval_steps_as_activities(env, store, menu_docs, stored_pending):
    pending_id, pending = stored_pending

    order_id = await env.run(activities.create_approved_order, CreateOrderInput(pending_order=pending))
    split = await env.run(activities.split_order_items, SplitInput(owner_id="owner-1", items=pending.items))
    for department in ("kitchen", "bar"):
        await env.run(
            activities.record_department_order,
            DepartmentOrderInput(
                order_id=order_id, owner_id="owner-1", department=department, items=split.items_for(department)
            ),
        )
    bill_id = await env.run(
        activities.add_to_table_bill, TableBillInput(owner_id="owner-1", table_number="7", items=pending.items)
    )
    await env.run(activities.delete_pending_order, DeletePendingInput(pending_order_id=pending_id))

    assert order_id in store.collections["orders"]
    assert [i.id for i in split.bar] == ["mojito"]
    assert len(store.docs("kitchen_orders")) == len(store.docs("bar_orders")) == 1
    assert store.collections["table_bills"][bill_id]["subtotal"] == pytest.approx(32.0)
    assert store.collections["pending_orders"] == {}


async def test_ledger_failures_propagate_from_activities(env, store, pending_order):
    store.fail_on("insert", "orders")

    with pytest.raises(RuntimeError):
        await env.run(activities.create_approved_order, CreateOrderInput(pending_order=pending_order))


def bar_ticket(pending_order):
    return Order(
        id="order-1",
        owner_id="owner-1",
        table_number="7",
        items=[i.model_copy(update={"department": "bar"}) for i in pending_order.items[2:]],
        total_amount=8.0,
    )


async def test_announce_posts_department_ticket(env, bot, pending_order):
    announce = AnnounceInput(order=bar_ticket(pending_order), department="bar")

    assert await env.run(activities.announce_department_order, announce) is True
    assert "Bar Order - Table 7" in bot.json_bodies()[0]["text"]


async def test_announce_reports_delivery_failure(env, bot, pending_order):
    bot.responses["sendMessage"] = (500, {"ok": False})
    announce = AnnounceInput(order=bar_ticket(pending_order), department="bar")

    assert await env.run(activities.announce_department_order, announce) is False


@pytest.mark.parametrize("fn", activities.ALL_ACTIVITIES, ids=lambda fn: fn.__name__)
def test_every_registered_activity_is_documented(fn):
    assert fn.__doc__ and fn.__doc__.strip()
