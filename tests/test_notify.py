"""
Tests for NotificationDispatcher and its message templates.

The Bot API is an httpx.MockTransport (see the `bot` fixture), so each test
can assert on the exact payloads posted and simulate failures.
"""

import httpx
import pytest

from conftest import dt
from restaurant_ops.domain.models import DailySummary, ItemCount, Order, OrderItem
from restaurant_ops.services import messages
from restaurant_ops.services.notify import NotificationDispatcher


@pytest.fixture
def order():
    return Order(
        id="ord1234567890",
        owner_id="owner-1",
        table_number="7",
        items=[
            OrderItem(id="burger", name="Burger", quantity=2, total=20.0, department="kitchen"),
            OrderItem(id="mojito", name="Mojito", quantity=1, total=8.0, department="bar"),
        ],
        total_amount=28.0,
        timestamp=dt(2024, 5, 4, 19),
    )


def callback_tokens(body):
    return [b["callback_data"] for row in body["reply_markup"]["inline_keyboard"] for b in row]


class TestTemplates:
    def test_pending_order_text(self, pending_order):
        text = messages.pending_order_text(pending_order)

        assert "Table 7" in text
        assert "• Burger x2 - $20.00" in text
        assert "Total: $32.00" in text
        assert "2024-05-04 19:00:00" in text

    def test_user_text_is_html_escaped(self):
        item = OrderItem(id="x", name="Fish & <Chips>", quantity=1, total=1.0)

        assert messages.priced_lines([item]) == "• Fish &amp; &lt;Chips&gt; x1 - $1.00"

    def test_payment_method_labels(self):
        assert messages.payment_method_label("bank_transfer") == "Bank Transfer"
        assert messages.payment_method_label("mobile_money") == "Mobile Money"
        assert messages.payment_method_label("cash") == "Mobile Money"

    def test_daily_summary_ranks_top_five(self):
        summary = DailySummary(
            total_orders=12,
            total_revenue=340.5,
            most_ordered_items=[ItemCount(name=f"Dish {i}", count=10 - i) for i in range(7)],
            most_active_table="3",
            waiter_calls=4,
            bill_requests=2,
        )

        text = messages.daily_summary_text(summary, dt(2024, 5, 4))

        assert "1. Dish 0 (10 orders)" in text
        assert "5. Dish 4 (6 orders)" in text
        assert "Dish 5" not in text
        assert "$340.50" in text
        assert "2024-05-04" in text

    def test_timezone_is_applied(self):
        from zoneinfo import ZoneInfo

        assert messages.format_time(dt(2024, 1, 1, 12), ZoneInfo("Africa/Addis_Ababa")) == "2024-01-01 15:00:00"


class TestDispatcher:
    async def test_send_message_posts_html_to_configured_chat(self, dispatcher, bot):
        assert await dispatcher.send_message("hello") is True

        [request] = bot.requests
        assert str(request.url) == "https://bot.example.test/bot123:TEST/sendMessage"
        [body] = bot.json_bodies()
        assert body == {"chat_id": -1001234, "text": "hello", "parse_mode": "HTML"}

    async def test_pending_order_alert_carries_approve_and_reject_tokens(self, dispatcher, bot, pending_order):
        pending = pending_order.model_copy(update={"id": "p42"})

        assert await dispatcher.send_pending_order_alert(pending) is True

        [body] = bot.json_bodies()
        assert callback_tokens(body) == ["approve_order_p42", "reject_order_p42"]

    async def test_department_order_lists_only_that_department(self, dispatcher, bot, order):
        assert await dispatcher.send_department_order(order, "bar") is True

        [body] = bot.json_bodies()
        assert "🍹 <b>Bar Order - Table 7</b>" in body["text"]
        assert "Mojito x1" in body["text"]
        assert "Burger" not in body["text"]
        assert "ord12345" in body["text"]
        assert callback_tokens(body) == ["ready_bar_ord1234567890", "delay_bar_ord1234567890"]

    async def test_department_order_without_matching_items_sends_nothing(self, dispatcher, bot, order):
        kitchen_only = order.model_copy(update={"items": order.items[:1]})

        assert await dispatcher.send_department_order(kitchen_only, "bar") is True
        assert bot.requests == []

    async def test_new_order_alert_has_no_buttons(self, dispatcher, bot, order):
        assert await dispatcher.send_new_order_alert(order) is True

        [body] = bot.json_bodies()
        assert "reply_markup" not in body
        assert "Total: $28.00" in body["text"]

    async def test_payment_confirmation_sends_photo_then_controls(self, dispatcher, bot, order):
        assert await dispatcher.send_payment_confirmation(order, "bank_transfer", b"\x89PNG") is True

        assert [bot.method(r) for r in bot.requests] == ["sendPhoto", "sendMessage"]
        photo = bot.requests[0]
        assert b"Payment Screenshot Attached" in photo.content
        assert b"\x89PNG" in photo.content
        [body] = bot.json_bodies()
        assert "Bank Transfer" in body["text"]
        assert callback_tokens(body) == ["approve_payment_ord1234567890", "reject_payment_ord1234567890"]

    async def test_payment_confirmation_reports_controls_result_when_photo_fails(self, dispatcher, bot, order):
        bot.responses["sendPhoto"] = (500, {"ok": False})

        assert await dispatcher.send_payment_confirmation(order, "mobile_money", b"img") is True
        assert len(bot.json_bodies()) == 1

    async def test_payment_confirmation_reports_controls_failure(self, dispatcher, bot, order):
        bot.responses["sendMessage"] = (200, {"ok": False, "description": "chat not found"})

        assert await dispatcher.send_payment_confirmation(order, "mobile_money", b"img") is False

    async def test_standalone_payment_controls(self, dispatcher, bot):
        assert await dispatcher.send_payment_confirmation_controls("conf9", "12", 45.5, "bank_transfer") is True

        [body] = bot.json_bodies()
        assert "Table 12" in body["text"]
        assert "$45.50" in body["text"]
        assert callback_tokens(body) == ["approve_payment_conf9", "reject_payment_conf9"]

    @pytest.mark.parametrize(
        "send, expected",
        [
            (lambda d: d.send_waiter_call_alert("5"), "Table 5 is calling the waiter"),
            (lambda d: d.send_bill_request_alert("5"), "Table 5 is requesting the bill"),
        ],
    )
    async def test_table_alerts(self, dispatcher, bot, send, expected):
        assert await send(dispatcher) is True

        [body] = bot.json_bodies()
        assert expected in body["text"]
        assert "🕐" in body["text"]

    async def test_daily_summary(self, dispatcher, bot):
        summary = DailySummary(total_orders=3, most_ordered_items=[ItemCount(name="Tea", count=9)])

        assert await dispatcher.send_daily_summary(summary) is True
        assert "1. Tea (9 orders)" in bot.json_bodies()[0]["text"]

    async def test_ok_false_is_reported_as_failure(self, dispatcher, bot):
        bot.responses["sendMessage"] = (200, {"ok": False})

        assert await dispatcher.send_message("x") is False

    async def test_http_error_is_swallowed(self, dispatcher, bot):
        bot.responses["sendMessage"] = (502, {"ok": False})

        assert await dispatcher.send_message("x") is False

    async def test_transport_error_is_swallowed(self, settings):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as http:
            dispatcher = NotificationDispatcher(settings, http=http)

            assert await dispatcher.send_waiter_call_alert("1") is False
            assert await dispatcher.send_photo(b"img", "caption") is False

    async def test_shared_client_is_not_closed(self, settings, bot):
        async with httpx.AsyncClient(transport=httpx.MockTransport(bot)) as http:
            async with NotificationDispatcher(settings, http=http) as dispatcher:
                await dispatcher.send_message("x")
            assert not http.is_closed


class TestDispatcherNeverRaises:
    @pytest.mark.parametrize("department", ["patio", "payment", ""])
    async def test_unknown_department_is_a_failed_delivery(self, dispatcher, bot, order, department):
        assert await dispatcher.send_department_order(order, department) is False
        assert bot.requests == []

    async def test_unsaved_pending_order_is_not_sent(self, dispatcher, bot, pending_order, caplog):
        assert pending_order.id is None

        assert await dispatcher.send_pending_order_alert(pending_order) is False
        assert bot.requests == []
        assert "has no id" in caplog.text

    async def test_unsaved_order_gets_no_department_ticket(self, dispatcher, bot, order):
        unsaved = order.model_copy(update={"id": None})

        assert await dispatcher.send_department_order(unsaved, "kitchen") is False
        assert await dispatcher.send_payment_confirmation(unsaved, "bank_transfer", b"img") is False
        assert await dispatcher.send_payment_confirmation_controls("", "3", 1.0, "bank_transfer") is False
        assert bot.requests == []

    async def test_template_errors_are_logged_not_raised(self, dispatcher, bot, order, monkeypatch, caplog):
        def broken(*args, **kwargs):
            raise KeyError("template")

        monkeypatch.setattr(messages, "new_order_text", broken)

        assert await dispatcher.send_new_order_alert(order) is False
        assert bot.requests == []
        assert "Error sending new order alert" in caplog.text

    async def test_caption_error_still_sends_payment_controls(self, dispatcher, bot, order, monkeypatch):
        def broken(*args, **kwargs):
            raise ValueError("caption")

        monkeypatch.setattr(messages, "payment_caption", broken)

        assert await dispatcher.send_payment_confirmation(order, "bank_transfer", b"img") is True
        assert [bot.method(r) for r in bot.requests] == ["sendMessage"]
