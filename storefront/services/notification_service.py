# storefront/services/notification_service.py
import json
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Iterable

import redis
from redis.exceptions import RedisError

from storefront.celery_worker import celery_app
from storefront.domain.exceptions import NotificationError
from storefront.utils import settings
from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry

logger = get_logger(__name__)


def user_channel(user_id: str) -> str:
    return f"user-{user_id}"


class NotificationSink(ABC):
    """Publish interface for realtime updates and emails."""

    @abstractmethod
    def publish(self, channel: str, event: str, payload: dict) -> None:
        ...


class RecordingNotificationSink(NotificationSink):
    """Keeps every published event in memory. Used when notifications are off and in tests."""

    def __init__(self):
        self.events: list[tuple[str, str, dict]] = []

    def publish(self, channel, event, payload):
        self.events.append((channel, event, payload))

    def for_channel(self, channel: str) -> list[tuple[str, dict]]:
        return [(e, p) for c, e, p in self.events if c == channel]


class RedisNotificationSink(NotificationSink):
    """
    Realtime updates over Redis pub/sub. Clients subscribed to a channel
    receive {"event": ..., "payload": ...} JSON messages.
    """

    def __init__(self, client: redis.Redis | None = None, url: str | None = None):
        self.redis = client or redis.Redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def _publish(self, channel: str, message: str) -> int:
        return self.redis.publish(channel, message)

    def publish(self, channel, event, payload):
        message = json.dumps({"event": event, "payload": payload}, default=str)
        try:
            receivers = self._publish(channel, message)
        except RedisError as e:
            raise NotificationError(
                f"Failed to publish {event} on {channel}",
                details={"channel": channel, "event": event},
            ) from e
        logger.info(f"Published {event} on {channel} to {receivers} subscribers")


class EmailNotificationSink(NotificationSink):
    """Hands selected events to the email task; everything else is ignored."""

    def __init__(self, events: Iterable[str] = ("new-order",)):
        self.events = frozenset(events)

    def publish(self, channel, event, payload):
        if event not in self.events:
            return
        try:
            send_order_email_task.delay(payload)
        except Exception as e:
            raise NotificationError(
                f"Failed to queue email for {event}",
                details={"channel": channel, "event": event},
            ) from e
        logger.info(f"Queued email for {event} (order {payload.get('id')})")


class CompositeNotificationSink(NotificationSink):
    """Fans one publish out to several sinks. A failing sink does not stop the others."""

    def __init__(self, sinks: Iterable[NotificationSink]):
        self.sinks = list(sinks)

    def publish(self, channel, event, payload):
        for sink in self.sinks:
            try:
                sink.publish(channel, event, payload)
            except Exception as e:
                logger.warning(f"{sink.__class__.__name__} failed to publish {event} on {channel}: {e}")


# =====================================================
# EMAIL TASK
# =====================================================
def format_rupees(amount: int) -> str:
    return f"₹{amount:,}"


def build_order_email(order: dict) -> EmailMessage:
    address = order.get("shipping_address") or {}
    lines = [
        f"{i['name']} x{i['quantity']} - {format_rupees(i['unit_price'] * i['quantity'])}"
        for i in order.get("items", [])
    ]

    body = "\n".join(
        [
            "New order received",
            "",
            f"Order ID: {order.get('id')}",
            f"Customer: {address.get('full_name', '')} <{order.get('customer_email') or 'n/a'}>",
            f"Phone: {address.get('phone', '')}",
            "",
            "Shipping address:",
            address.get("street", ""),
            f"Apt/Suite: {address['apartment']}" if address.get("apartment") else "",
            f"{address.get('city', '')}, {address.get('state', '')} {address.get('postal_code', '')}",
            "",
            f"Payment method: {order.get('payment_method')}",
            f"Shipping method: {order.get('shipping_method') or 'standard'}",
            "",
            *lines,
            "",
            f"Subtotal: {format_rupees(order.get('subtotal', 0))}",
            f"Shipping: {format_rupees(order.get('shipping_cost', 0))}",
            f"Discount: -{format_rupees(order.get('discount_amount', 0))}",
            f"Total: {format_rupees(order.get('total_amount', 0))}",
        ]
    )

    msg = EmailMessage()
    msg["Subject"] = f"New order {order.get('id')} from {address.get('full_name', 'customer')}"
    msg["From"] = settings.ORDER_EMAIL_FROM
    msg["To"] = settings.ORDER_EMAIL_TO
    msg.set_content(body)
    return msg


@celery_app.task(
    name="storefront.services.notification_service.send_order_email_task",
    autoretry_for=(smtplib.SMTPException, OSError),
    retry_kwargs={"max_retries": 2, "countdown": 1},
)
def send_order_email_task(order: dict):
    """
    Celery task: email the shop inbox about a new order. Transient SMTP
    failures are retried, three attempts in total, one second apart.
    Without SMTP_HOST the message is only logged.
    """
    msg = build_order_email(order)

    if not settings.SMTP_HOST:
        logger.info(f"[NOTIFICATION] {msg['Subject']} (SMTP not configured, not sent)")
        return {"order_id": order.get("id"), "status": "logged"}

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        smtp.starttls()
        if settings.SMTP_USER:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        smtp.send_message(msg)

    logger.info(f"[NOTIFICATION] {msg['Subject']} sent to {settings.ORDER_EMAIL_TO}")
    return {"order_id": order.get("id"), "status": "sent"}
