"""
Outbound chat and automation webhooks (Slack, Zapier)
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
import requests
from catering_api.core.config import settings
from catering_api.models.integration import ZAPIER_SERVICE
from catering_api.storage import CateringStorage

logger = logging.getLogger(__name__)

TEST_MESSAGE = "This is a test webhook from Air Gourmet Hellas"


def post_json(url: str, payload: Dict[str, Any]) -> None:
    response = requests.post(url, json=payload, timeout=settings.INTEGRATION_TIMEOUT)
    response.raise_for_status()


class SlackService:
    """Posts plain messages to an incoming webhook"""

    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.SLACK_WEBHOOK_URL

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def send_message(self, text: str) -> bool:
        if not self.enabled:
            logger.warning("Slack webhook not configured, skipping message")
            return False
        try:
            post_json(self.webhook_url, {"text": text})
            logger.info("Slack message sent")
            return True
        except requests.RequestException as e:
            logger.error(f"Failed to send Slack message: {e}")
            return False

    def notify_order_event(self, event: str, order) -> bool:
        total = (order.total_price or 0) / 100
        text = (
            f"*{event.replace('_', ' ').title()}* #{order.order_number} "
            f"({order.kitchen_location}) status: {order.status}, "
            f"departure {order.departure_date} {order.departure_time}, total EUR {total:.2f}"
        )
        return self.send_message(text)

    def create_support_request(self, username: str, email: Optional[str], message: str,
                               order_number: Optional[str] = None, order_id: Optional[int] = None) -> bool:
        lines = [f"*Support request* from {username} ({email or 'no email'})"]
        if order_number or order_id:
            lines.append(f"Order: {order_number or '-'} (id {order_id or '-'})")
        lines.append(f"> {message}")
        return self.send_message("\n".join(lines))


class ZapierService:
    """Generic automation webhook for order events

    The environment provides the defaults; settings saved by an admin in
    the integration_settings table take precedence.
    """

    def __init__(self, webhook_url: Optional[str] = None, events=None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.ZAPIER_WEBHOOK_URL
        self.events = list(events if events is not None else settings.ZAPIER_EVENTS)

    def configured(self, storage: CateringStorage) -> "ZapierService":
        """This service with any persisted webhook URL and event list applied"""
        saved = storage.get_integration_settings(ZAPIER_SERVICE)
        webhook_url = saved.get("webhookUrl") or self.webhook_url
        events = self.events
        if saved.get("events"):
            try:
                events = json.loads(saved["events"])
            except ValueError:
                logger.warning("Stored Zapier events are not valid JSON, using defaults")
        return ZapierService(webhook_url=webhook_url, events=events)

    def save_config(self, storage: CateringStorage, webhook_url: str, events: List[str]) -> "ZapierService":
        storage.set_integration_setting(ZAPIER_SERVICE, "webhookUrl", webhook_url, commit=False)
        storage.set_integration_setting(ZAPIER_SERVICE, "events", json.dumps(events), commit=False)
        storage.commit()
        logger.info(f"Zapier webhook configured for events {events}")
        return self.configured(storage)

    def is_enabled_for(self, event: str) -> bool:
        return bool(self.webhook_url) and event in self.events

    def build_payload(self, event: str, order_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "event": event,
            "timestamp": datetime.utcnow().isoformat(),
            "orderId": order_id,
            "data": data,
        }

    def notify_order_event(self, event: str, order_id: int, data: Dict[str, Any]) -> bool:
        if not self.is_enabled_for(event):
            logger.warning(f"Zapier webhook disabled for event {event}, skipping")
            return False
        try:
            post_json(self.webhook_url, self.build_payload(event, order_id, data))
            logger.info(f"Zapier webhook delivered for order {order_id} ({event})")
            return True
        except requests.RequestException as e:
            logger.error(f"Zapier webhook failed for order {order_id} ({event}): {e}")
            return False

    def send_test(self, webhook_url: str) -> bool:
        payload = {
            "event": "test",
            "timestamp": datetime.utcnow().isoformat(),
            "data": {"message": TEST_MESSAGE},
        }
        try:
            post_json(webhook_url, payload)
            logger.info(f"Zapier test webhook delivered to {webhook_url}")
            return True
        except requests.RequestException as e:
            logger.error(f"Zapier test webhook to {webhook_url} failed: {e}")
            return False
