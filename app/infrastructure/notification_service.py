from twilio.rest import Client
from twilio.base.exceptions import TwilioException
import logging
from typing import Iterable, Optional

from app.core.config import settings
from app.domain.notification_templates import render
from app.domain.schemas import LifecycleEvent
from app.interfaces.INotificationDispatcher import INotificationDispatcher

logger = logging.getLogger(__name__)


def _whatsapp(number: str) -> str:
    # Twilio requires the "whatsapp:" prefix
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"


class TwilioNotificationDispatcher(INotificationDispatcher):
    def __init__(
        self,
        account_sid: Optional[str] = settings.TWILIO_ACCOUNT_SID,
        auth_token: Optional[str] = settings.TWILIO_AUTH_TOKEN,
        from_number: Optional[str] = settings.TWILIO_FROM_NUMBER,
        to_number: Optional[str] = settings.NOTIFY_PHONE_NUMBER,
        client=None,
    ):
        self.client = client
        self.from_number = from_number
        self.to_number = to_number
        self.enabled = False

        # Only initialize if credentials exist
        if self.client is None and account_sid and auth_token:
            try:
                self.client = Client(account_sid, auth_token)
            except TwilioException as e:
                logger.error(f"Failed to initialize Twilio Client: {e}")

        if self.client is not None and from_number and to_number:
            self.enabled = True
            logger.info("NotificationService: Twilio client initialized")
        else:
            logger.warning("NotificationService: credentials or numbers missing. Notifications disabled.")

    def publish(self, event: LifecycleEvent) -> None:
        title, message = render(event)
        if not self.enabled:
            logger.info(f"[notification disabled] {title}: {message}")
            return

        try:
            self.client.messages.create(
                from_=_whatsapp(self.from_number),
                body=f"*{title}*\n\n{message}",
                to=_whatsapp(self.to_number),
            )
            logger.info(f"Notification sent for order {event.order_number} ({event.new_status})")
        except Exception:
            logger.exception(f"Failed to send notification for order {event.order_number}")


class CompositeDispatcher(INotificationDispatcher):
    """Fans one event out to several dispatchers; one failing never stops the others."""

    def __init__(self, dispatchers: Iterable[INotificationDispatcher]):
        self.dispatchers = list(dispatchers)

    def publish(self, event: LifecycleEvent) -> None:
        for dispatcher in self.dispatchers:
            try:
                dispatcher.publish(event)
            except Exception:
                logger.exception(f"{type(dispatcher).__name__} failed to publish {event.kind.value} for order {event.order_id}")
