"""
Notification service facade over the Telegram Bot API.

Posts staff-facing messages (new orders, department tickets, payment checks,
table alerts, daily reports) to the one chat configured in Settings.

Delivery is best-effort: every public method returns True/False and logs
failures instead of raising, so a chat outage never breaks the order flow that
triggered the notification. That covers rendering too: a bad department name
or an unsaved order is reported as False, not as an exception.
"""

import functools
import logging
from datetime import datetime
from zoneinfo import ZoneInfo

import httpx

from restaurant_ops.config import Settings
from restaurant_ops.domain.models import DailySummary, Department, Order, PendingOrder, utcnow
from restaurant_ops.services import messages
from restaurant_ops.services.messages import Keyboard

logger = logging.getLogger(__name__)

PARSE_MODE = "HTML"


def best_effort(action: str):
    """Turn any exception from the wrapped coroutine into a logged False."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> bool:
            try:
                return await func(*args, **kwargs)
            except Exception:
                logger.exception("Error %s", action)
                return False

        return wrapper

    return decorator


def has_id(kind: str, record_id: str | None) -> bool:
    # Buttons embed the id; without one the callback could never be resolved.
    if not record_id:
        logger.warning("Not sending %s notification: record has no id", kind)
        return False
    return True


class NotificationDispatcher:
    """Renders domain events and sends them to the staff chat.

    Pass `http` to share a client (tests pass one built on httpx.MockTransport);
    otherwise the dispatcher owns its client and closes it in `aclose()`.
    """

    def __init__(self, settings: Settings, http: httpx.AsyncClient | None = None) -> None:
        self.chat_id = settings.telegram_chat_id
        self.tz = ZoneInfo(settings.display_timezone)
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=settings.telegram_timeout)
        self.base_url = settings.telegram_bot_url

    async def __aenter__(self) -> "NotificationDispatcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    # ── Transport ────────────────────────────────────────────────

    async def _post(self, method: str, **kwargs) -> bool:
        response = await self.http.post(f"{self.base_url}/{method}", **kwargs)
        response.raise_for_status()
        ok = bool(response.json().get("ok", False))
        if not ok:
            logger.warning("Telegram %s returned ok=false: %s", method, response.text)
        return ok

    @best_effort("sending Telegram message")
    async def send_message(self, text: str, keyboard: Keyboard | None = None) -> bool:
        payload: dict = {"chat_id": self.chat_id, "text": text, "parse_mode": PARSE_MODE}
        if keyboard:
            payload["reply_markup"] = {"inline_keyboard": keyboard}
        return await self._post("sendMessage", json=payload)

    @best_effort("sending Telegram photo")
    async def send_photo(self, image: bytes, caption: str, filename: str = "photo.jpg") -> bool:
        data = {"chat_id": str(self.chat_id), "caption": caption, "parse_mode": PARSE_MODE}
        return await self._post("sendPhoto", data=data, files={"photo": (filename, image)})

    # ── Orders ───────────────────────────────────────────────────

    @best_effort("sending pending order alert")
    async def send_pending_order_alert(self, pending: PendingOrder) -> bool:
        """Ask staff to approve or reject a submitted order."""
        if not has_id("pending order", pending.id):
            return False
        logger.info("Announcing pending order %s for table %s", pending.id, pending.table_number)
        return await self.send_message(
            messages.pending_order_text(pending, self.tz),
            messages.pending_order_keyboard(pending.id),
        )

    @best_effort("sending department order")
    async def send_department_order(self, order: Order, department: Department | str) -> bool:
        """Post the ticket for one department.

        Only lines tagged with `department` are listed. An order with no such
        lines needs no ticket, which counts as success. An unknown department
        is a failure.
        """
        try:
            department = Department(department).value
        except ValueError:
            logger.warning("Not sending order %s to unknown department %r", order.id, department)
            return False
        items = [item for item in order.items if item.department == department]
        if not items:
            return True
        if not has_id(f"{department} order", order.id):
            return False
        logger.info("Sending %d %s line(s) for order %s", len(items), department, order.id)
        return await self.send_message(
            messages.department_order_text(order, department, items, self.tz),
            messages.department_order_keyboard(department, order.id),
        )

    @best_effort("sending new order alert")
    async def send_new_order_alert(self, order: Order) -> bool:
        return await self.send_message(messages.new_order_text(order, self.tz))

    # ── Payments ─────────────────────────────────────────────────

    @best_effort("sending payment confirmation")
    async def send_payment_confirmation(self, order: Order, payment_method: str, screenshot: bytes) -> bool:
        """Post the customer's payment screenshot, then the accept/reject prompt.

        The prompt is sent even if the screenshot upload fails, and only the
        prompt's delivery is reported back.
        """
        if not has_id("payment", order.id):
            return False
        if not await self._send_payment_screenshot(order, payment_method, screenshot):
            logger.warning("Payment screenshot for order %s was not delivered", order.id)
        return await self.send_message(
            messages.payment_verification_text(
                order.table_number, order.total_amount, payment_method, order.timestamp, self.tz
            ),
            messages.payment_keyboard(order.id),
        )

    @best_effort("sending payment screenshot")
    async def _send_payment_screenshot(self, order: Order, payment_method: str, screenshot: bytes) -> bool:
        return await self.send_photo(screenshot, messages.payment_caption(order, payment_method, self.tz))

    @best_effort("sending payment controls")
    async def send_payment_confirmation_controls(
        self,
        confirmation_id: str,
        table_number: str,
        total: float,
        method: str,
        now: datetime | None = None,
    ) -> bool:
        if not has_id("payment", confirmation_id):
            return False
        return await self.send_message(
            messages.payment_verification_text(table_number, total, method, now or utcnow(), self.tz),
            messages.payment_keyboard(confirmation_id),
        )

    # ── Table alerts and reports ─────────────────────────────────

    @best_effort("sending waiter call alert")
    async def send_waiter_call_alert(self, table_number: str) -> bool:
        return await self.send_message(messages.waiter_call_text(table_number, utcnow(), self.tz))

    @best_effort("sending bill request alert")
    async def send_bill_request_alert(self, table_number: str) -> bool:
        return await self.send_message(messages.bill_request_text(table_number, utcnow(), self.tz))

    @best_effort("sending daily summary")
    async def send_daily_summary(self, summary: DailySummary) -> bool:
        return await self.send_message(messages.daily_summary_text(summary, utcnow(), self.tz))
