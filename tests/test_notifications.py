from types import SimpleNamespace

from redis.exceptions import ConnectionError as RedisConnectionError
from twilio.base.exceptions import TwilioRestException

from app.domain.enums import EventKind
from app.domain.notification_templates import render
from app.domain.schemas import LifecycleEvent
from app.infrastructure.event_log import MAX_EVENTS_PER_ORDER, RedisEventLog
from app.infrastructure.notification_service import CompositeDispatcher, TwilioNotificationDispatcher

from conftest import NOW, RecordingDispatcher


def event(new_status="confirmed", kind=EventKind.ORDER_STATUS, order_id=1, previous="pending", total_amount=None):
    return LifecycleEvent(
        order_id=order_id,
        order_number="261018-042",
        user_id="user-1",
        kind=kind,
        previous_status=previous,
        new_status=new_status,
        timestamp=NOW,
        total_amount=total_amount,
    )


class FakeMessages:
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    def create(self, **kwargs):
        if self.error:
            raise self.error
        self.sent.append(kwargs)


class DownRedis:
    def ping(self):
        raise RedisConnectionError("connection refused")


def test_render_templates():
    assert render(event("ready")) == ("Order Ready", "Your order #261018-042 is ready for pickup.")
    title, message = render(event("failed", kind=EventKind.PAYMENT_STATUS))
    assert title == "Payment Failed"
    assert "261018-042" in message
    assert render(event("unknown"))[1] == "Your order #261018-042 status has been updated to unknown."


def test_render_formats_order_total():
    _, received = render(event("pending", kind=EventKind.ORDER_CONFIRMATION, previous=None, total_amount=12800))
    assert received == "Your order #261018-042 for 12 800 KZT has been received and is being processed."

    _, paid = render(event("paid", kind=EventKind.PAYMENT_STATUS, total_amount=2800))
    assert paid == "Payment of 2 800 KZT for order #261018-042 has been completed."

    _, no_amount = render(event("paid", kind=EventKind.PAYMENT_STATUS))
    assert no_amount == "Payment for order #261018-042 has been completed."


def test_event_log_memory_fallback():
    log = RedisEventLog(None)
    assert not log.redis_available
    log.publish(event("confirmed"))
    log.publish(event("preparing", previous="confirmed"))
    log.publish(event("confirmed", order_id=2))

    history = log.history(1)
    assert [e.new_status for e in history] == ["confirmed", "preparing"]
    assert history[0] == event("confirmed")
    assert log.history(3) == []


def test_event_log_falls_back_when_redis_is_down():
    log = RedisEventLog(client=DownRedis())
    assert not log.redis_available
    log.publish(event())
    assert len(log.history(1)) == 1


def test_event_log_is_capped():
    log = RedisEventLog(None)
    for _ in range(MAX_EVENTS_PER_ORDER + 5):
        log.publish(event())
    assert len(log.history(1)) == MAX_EVENTS_PER_ORDER


def test_twilio_disabled_without_credentials():
    dispatcher = TwilioNotificationDispatcher(account_sid=None, auth_token=None, from_number=None, to_number=None)
    assert not dispatcher.enabled
    dispatcher.publish(event())


def test_twilio_sends_whatsapp_message():
    messages = FakeMessages()
    dispatcher = TwilioNotificationDispatcher(
        from_number="+14155238886",
        to_number="whatsapp:+77011234567",
        client=SimpleNamespace(messages=messages),
    )
    dispatcher.publish(event("cancelled"))

    [sent] = messages.sent
    assert sent["from_"] == "whatsapp:+14155238886"
    assert sent["to"] == "whatsapp:+77011234567"
    assert "Order Cancelled" in sent["body"]


def test_twilio_failure_is_swallowed():
    messages = FakeMessages(error=TwilioRestException(500, "https://api.twilio.com", msg="boom"))
    dispatcher = TwilioNotificationDispatcher(
        from_number="+1", to_number="+2", client=SimpleNamespace(messages=messages)
    )
    dispatcher.publish(event())
    assert messages.sent == []


def test_twilio_transport_error_is_swallowed():
    messages = FakeMessages(error=ConnectionError("connection reset by peer"))
    dispatcher = TwilioNotificationDispatcher(
        from_number="+1", to_number="+2", client=SimpleNamespace(messages=messages)
    )
    dispatcher.publish(event())
    assert messages.sent == []


def test_composite_isolates_failures():
    class Broken:
        def publish(self, event):
            raise RuntimeError("nope")

    first, last = RecordingDispatcher(), RecordingDispatcher()
    CompositeDispatcher([first, Broken(), last]).publish(event())
    assert len(first.events) == 1
    assert len(last.events) == 1
