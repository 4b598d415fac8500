"""
Message templates for the staff chat.

Pure functions from domain objects to Telegram HTML text and inline keyboards.
Nothing here touches the network, which keeps the wording testable without a
bot. User-supplied strings are escaped since the chat renders `parse_mode=HTML`.
"""

from collections.abc import Sequence
from datetime import datetime, timezone, tzinfo
from html import escape

from restaurant_ops.domain.models import DailySummary, Department, Order, OrderItem, PaymentMethod, PendingOrder
from restaurant_ops.domain.tokens import ActionDomain, ActionVerb, action_token

Button = dict[str, str]
Keyboard = list[list[Button]]

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"

DEPARTMENT_BANNERS = {
    Department.KITCHEN.value: ("👨‍🍳", "Kitchen"),
    Department.BAR.value: ("🍹", "Bar"),
}


def format_time(moment: datetime, tz: tzinfo = timezone.utc) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).strftime(TIME_FORMAT)


def payment_method_label(method: str) -> str:
    return "Bank Transfer" if method == PaymentMethod.BANK_TRANSFER.value else "Mobile Money"


def priced_lines(items: Sequence[OrderItem]) -> str:
    return "\n".join(f"• {escape(item.name)} x{item.quantity} - ${item.total:.2f}" for item in items)


def plain_lines(items: Sequence[OrderItem]) -> str:
    return "\n".join(f"• {escape(item.name)} x{item.quantity}" for item in items)


def button(text: str, verb: ActionVerb, domain: ActionDomain | str, target_id: str) -> Button:
    return {"text": text, "callback_data": action_token(verb, domain, target_id)}


# ── Orders ───────────────────────────────────────────────────────────


def pending_order_text(pending: PendingOrder, tz: tzinfo = timezone.utc) -> str:
    return (
        f"🍽️ <b>New Order Pending Approval - Table {escape(pending.table_number)}</b>\n"
        f"\n"
        f"{priced_lines(pending.items)}\n"
        f"\n"
        f"💰 <b>Total: ${pending.total_amount:.2f}</b>\n"
        f"🕐 <b>Time:</b> {format_time(pending.timestamp, tz)}\n"
        f"\n"
        f"⚠️ <b>Awaiting approval...</b>"
    )


def pending_order_keyboard(pending_order_id: str) -> Keyboard:
    return [
        [
            button("✅ Approve Order", ActionVerb.APPROVE, ActionDomain.ORDER, pending_order_id),
            button("❌ Reject Order", ActionVerb.REJECT, ActionDomain.ORDER, pending_order_id),
        ]
    ]


def department_order_text(
    order: Order,
    department: str,
    items: Sequence[OrderItem],
    tz: tzinfo = timezone.utc,
) -> str:
    icon, label = DEPARTMENT_BANNERS[department]
    return (
        f"{icon} <b>{label} Order - Table {escape(order.table_number)}</b>\n"
        f"\n"
        f"{plain_lines(items)}\n"
        f"\n"
        f"🕐 <b>Time:</b> {format_time(order.timestamp, tz)}\n"
        f"📋 <b>Order ID:</b> {escape((order.id or '')[:8])}\n"
        f"\n"
        f"<b>Status: APPROVED - Start Preparation</b>"
    )


def department_order_keyboard(department: str, order_id: str) -> Keyboard:
    return [
        [
            button("✅ Ready", ActionVerb.READY, department, order_id),
            button("⏰ Delay", ActionVerb.DELAY, department, order_id),
        ]
    ]


def new_order_text(order: Order, tz: tzinfo = timezone.utc) -> str:
    return (
        f"🍽️ <b>New Order - Table {escape(order.table_number)}</b>\n"
        f"\n"
        f"{priced_lines(order.items)}\n"
        f"\n"
        f"💰 <b>Total: ${order.total_amount:.2f}</b>\n"
        f"🕐 <b>Time:</b> {format_time(order.timestamp, tz)}"
    )


# ── Payments ─────────────────────────────────────────────────────────


def payment_caption(order: Order, method: str, tz: tzinfo = timezone.utc) -> str:
    return (
        f"💳 <b>Payment Confirmation - Table {escape(order.table_number)}</b>\n"
        f"\n"
        f"{priced_lines(order.items)}\n"
        f"\n"
        f"💰 <b>Total: ${order.total_amount:.2f}</b>\n"
        f"💳 <b>Method:</b> {payment_method_label(method)}\n"
        f"🕐 <b>Time:</b> {format_time(order.timestamp, tz)}\n"
        f"\n"
        f"📸 <b>Payment Screenshot Attached</b>"
    )


def payment_verification_text(table_number: str, total: float, method: str, moment: datetime, tz: tzinfo = timezone.utc) -> str:
    return (
        f"💳 <b>Payment Verification Needed - Table {escape(table_number)}</b>\n"
        f"\n"
        f"💰 <b>Amount: ${total:.2f}</b>\n"
        f"💳 <b>Method:</b> {payment_method_label(method)}\n"
        f"🕐 <b>Time:</b> {format_time(moment, tz)}"
    )


def payment_keyboard(target_id: str) -> Keyboard:
    return [
        [
            button("✅ Accept Payment", ActionVerb.APPROVE, ActionDomain.PAYMENT, target_id),
            button("❌ Reject Payment", ActionVerb.REJECT, ActionDomain.PAYMENT, target_id),
        ]
    ]


# ── Table alerts and reports ─────────────────────────────────────────


def waiter_call_text(table_number: str, moment: datetime, tz: tzinfo = timezone.utc) -> str:
    return f"📞 <b>Table {escape(table_number)} is calling the waiter</b>\n🕐 {format_time(moment, tz)}"


def bill_request_text(table_number: str, moment: datetime, tz: tzinfo = timezone.utc) -> str:
    return f"💸 <b>Table {escape(table_number)} is requesting the bill</b>\n🕐 {format_time(moment, tz)}"


def daily_summary_text(summary: DailySummary, moment: datetime, tz: tzinfo = timezone.utc) -> str:
    top_items = "\n".join(
        f"{rank}. {escape(item.name)} ({item.count} orders)"
        for rank, item in enumerate(summary.most_ordered_items[:5], start=1)
    )
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (
        f"📊 <b>Daily Summary Report</b>\n"
        f"📅 {moment.astimezone(tz).strftime(DATE_FORMAT)}\n"
        f"\n"
        f"📈 <b>Orders:</b> {summary.total_orders}\n"
        f"💰 <b>Revenue:</b> ${summary.total_revenue:.2f}\n"
        f"🏆 <b>Most Active Table:</b> {escape(summary.most_active_table)}\n"
        f"\n"
        f"🍽️ <b>Top Ordered Items:</b>\n"
        f"{top_items}\n"
        f"\n"
        f"📞 <b>Waiter Calls:</b> {summary.waiter_calls}\n"
        f"💸 <b>Bill Requests:</b> {summary.bill_requests}"
    )
