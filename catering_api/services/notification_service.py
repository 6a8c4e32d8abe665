"""
Notification service for order events

Resolves recipients per event type, renders the HTML templates, sends one
email to all recipients over SMTP and fans out to the SMS, Slack and Zapier
channels. Each recipient and channel is recorded in the activity log.
Nothing here raises: every failure is logged and reported as False.
"""
import html
import json
import logging
import smtplib
import enum
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, Dict, List, Optional
from sqlalchemy.orm import Session
from twilio.rest import Client
from catering_api.core.config import settings
from catering_api.core.database import SessionLocal
from catering_api.models.order import Order, OrderStatus, ORDER_STATUS_LABELS
from catering_api.models.user import User
from catering_api.services.integrations import SlackService, ZapierService
from catering_api.storage import CateringStorage

logger = logging.getLogger(__name__)


def escape(value) -> str:
    """HTML-escape a template value; None renders empty"""
    return "" if value is None else html.escape(str(value))


class NotificationType(str, enum.Enum):
    NEW_ORDER = "new_order"
    ORDER_UPDATED = "order_updated"
    ORDER_CANCELLED = "order_cancelled"
    ORDER_READY = "order_ready"
    ORDER_DELIVERED = "order_delivered"
    ADMIN_ALERT = "admin_alert"
    CLIENT_ALERT = "client_alert"


STATUS_NOTIFICATIONS = {
    OrderStatus.CANCELLED.value: NotificationType.ORDER_CANCELLED,
    OrderStatus.READY.value: NotificationType.ORDER_READY,
    OrderStatus.DELIVERED.value: NotificationType.ORDER_DELIVERED,
}

# Events forwarded to the automation webhook
WEBHOOK_EVENTS = {
    NotificationType.NEW_ORDER: "order_created",
    NotificationType.ORDER_UPDATED: "order_updated",
    NotificationType.ORDER_CANCELLED: "order_cancelled",
}

SMS_TYPES = {NotificationType.ORDER_READY, NotificationType.ORDER_DELIVERED}

AUTOMATION_RECIPIENT = "zapier-automation"


def notification_type_for_status(status: str) -> NotificationType:
    """Map a new order status to the notification it triggers"""
    value = status.value if isinstance(status, OrderStatus) else status
    return STATUS_NOTIFICATIONS.get(value, NotificationType.ORDER_UPDATED)


def get_kitchen_email(location: Optional[str]) -> str:
    if (location or "").lower() == "mykonos":
        return settings.KITCHEN_EMAIL_MYKONOS
    return settings.KITCHEN_EMAIL_THESSALONIKI


def format_euros(cents: Optional[int]) -> str:
    return f"€{(cents or 0) / 100:.2f}"


class NotificationService:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        slack: Optional[SlackService] = None,
        zapier: Optional[ZapierService] = None,
    ):
        self.session_factory = session_factory
        self.slack = slack or SlackService()
        self.zapier = zapier or ZapierService()

        # Email configuration
        self.smtp_server = settings.SMTP_SERVER
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.SMTP_USERNAME
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL

        # Initialize Twilio client if credentials are available
        self.twilio_phone_number = settings.TWILIO_PHONE_NUMBER
        self.twilio_client = None
        if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN:
            try:
                self.twilio_client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
            except Exception as e:
                logger.warning(f"Failed to initialize Twilio client: {e}")

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def send_email(self, recipients: List[str], subject: str, body: str) -> bool:
        """Send one HTML email to every recipient"""
        try:
            if not self.smtp_username or not self.smtp_password:
                logger.warning("SMTP credentials not configured, skipping email")
                return False

            msg = MIMEMultipart()
            msg["From"] = self.from_email
            msg["To"] = ", ".join(recipients)
            msg["Subject"] = subject
            msg.attach(MIMEText(body, "html"))

            server = smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=settings.INTEGRATION_TIMEOUT)
            try:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.sendmail(self.from_email, recipients, msg.as_string())
            finally:
                server.quit()

            logger.info(f"Email '{subject}' sent to {', '.join(recipients)}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email to {recipients}: {e}")
            return False

    def send_sms(self, to_phone: str, message: str) -> bool:
        try:
            if not self.twilio_client:
                logger.warning("Twilio client not configured, skipping SMS")
                return False

            self.twilio_client.messages.create(
                body=message,
                from_=self.twilio_phone_number,
                to=to_phone,
            )
            logger.info(f"SMS sent successfully to {to_phone}")
            return True

        except Exception as e:
            logger.error(f"Failed to send SMS to {to_phone}: {e}")
            return False

    # ------------------------------------------------------------------
    # Routing and templates
    # ------------------------------------------------------------------

    def get_recipients(self, notification_type: NotificationType, order: Order, client: Optional[User]) -> List[str]:
        kitchen_email = get_kitchen_email(order.kitchen_location)
        client_email = client.email if client and client.email else None
        recipients = []

        if notification_type == NotificationType.NEW_ORDER:
            recipients = [settings.OPERATIONS_EMAIL, kitchen_email]
        elif notification_type in (NotificationType.ORDER_UPDATED, NotificationType.ORDER_CANCELLED):
            recipients = [client_email, kitchen_email]
        elif notification_type == NotificationType.ORDER_READY:
            recipients = [client_email, settings.DELIVERY_EMAIL]
        elif notification_type == NotificationType.ORDER_DELIVERED:
            recipients = [client_email, settings.OPERATIONS_EMAIL]
        elif notification_type == NotificationType.ADMIN_ALERT:
            recipients = [settings.ADMIN_EMAIL]
        elif notification_type == NotificationType.CLIENT_ALERT:
            recipients = [client_email]

        return [r for r in recipients if r]

    def get_subject(self, notification_type: NotificationType, order: Order) -> str:
        number = order.order_number
        location = order.kitchen_location
        if notification_type == NotificationType.NEW_ORDER:
            return f"[URGENT] New Order #{number} - {location}"
        if notification_type == NotificationType.ORDER_UPDATED:
            return f"Order #{number} Updated - {location}"
        if notification_type == NotificationType.ORDER_CANCELLED:
            return f"Order #{number} Cancelled - {location}"
        if notification_type == NotificationType.ORDER_READY:
            return f"Order #{number} Ready for Delivery - {location}"
        if notification_type == NotificationType.ORDER_DELIVERED:
            return f"Order #{number} Successfully Delivered"
        return f"Air Gourmet Hellas - Order #{number} Update"

    def _wrap(self, color: str, heading: str, intro: str, rows: Dict[str, str], link_text: str, order: Order) -> str:
        details = "".join(
            f'<p style="margin: 5px 0;"><strong>{label}:</strong> {escape(value)}</p>'
            for label, value in rows.items()
        )
        order_link = f"{settings.ADMIN_PANEL_URL}/{order.id}"
        return f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2 style="color: {color};">{escape(heading)}</h2>
            <p>{escape(intro)}</p>
            <div style="background-color: #f4f4f4; padding: 15px; border-radius: 5px; margin: 20px 0;">
                {details}
            </div>
            <a href="{order_link}" style="background-color: {color}; color: white; padding: 10px 15px; text-decoration: none; border-radius: 4px; display: inline-block;">{link_text}</a>
            <p style="margin-top: 30px; font-size: 12px; color: #777;">This is an automated message from Air Gourmet Hellas. Please do not reply to this email.</p>
        </div>
        """

    def render_email(self, notification_type: NotificationType, order: Order) -> str:
        flight = {
            "Order Number": order.order_number,
            "Aircraft": f"{order.aircraft_type} ({order.tail_number})",
            "Departure": f"{order.departure_date} at {order.departure_time}",
        }
        if notification_type == NotificationType.NEW_ORDER:
            rows = dict(flight)
            rows.update({
                "Departure Airport": order.departure_airport,
                "Passenger Count": str(order.passenger_count),
                "Crew Count": str(order.crew_count),
                "Delivery Location": order.delivery_location,
                "Total Amount": format_euros(order.total_price),
            })
            return self._wrap("#0047AB", "New Order Received",
                              "A new order has been placed and requires your attention.",
                              rows, "View Order Details", order)
        if notification_type == NotificationType.ORDER_UPDATED:
            rows = {"Order Number": order.order_number, "Status": self._label(order.status)}
            rows.update(flight)
            return self._wrap("#FFA500", "Order Updated",
                              f"Order #{order.order_number} has been updated and requires your attention.",
                              rows, "View Updated Order", order)
        if notification_type == NotificationType.ORDER_CANCELLED:
            return self._wrap("#FF0000", "Order Cancelled",
                              f"Order #{order.order_number} has been cancelled.",
                              flight, "View Cancelled Order", order)
        if notification_type == NotificationType.ORDER_READY:
            rows = dict(flight)
            rows["Delivery Location"] = order.delivery_location
            rows["Delivery Time"] = order.delivery_time
            return self._wrap("#008000", "Order Ready for Delivery",
                              f"Order #{order.order_number} is ready and waiting for pickup.",
                              rows, "View Order", order)
        if notification_type == NotificationType.ORDER_DELIVERED:
            rows = dict(flight)
            rows["Delivered To"] = order.delivery_location
            return self._wrap("#4B0082", "Order Delivered",
                              f"Order #{order.order_number} has been successfully delivered.",
                              rows, "View Order", order)
        return self._wrap("#333333", "Order Notification",
                          f"There is an update on order #{order.order_number}.",
                          {"Status": self._label(order.status)}, "View Order", order)

    def render_client_confirmation(self, order: Order, client: User) -> str:
        rows = {
            "Order Number": order.order_number,
            "Aircraft": f"{order.aircraft_type} ({order.tail_number})",
            "Departure": f"{order.departure_date} at {order.departure_time} from {order.departure_airport}",
            "Delivery Location": order.delivery_location,
            "Total Amount": format_euros(order.total_price),
        }
        return self._wrap("#0047AB", f"Thank you, {client.full_name}",
                          "We have received your catering order and our team is reviewing it.",
                          rows, "Track Your Order", order)

    @staticmethod
    def _label(status: str) -> str:
        try:
            return ORDER_STATUS_LABELS[OrderStatus(status)]
        except ValueError:
            return status

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def _log(self, storage: CateringStorage, order_id: int, notification_type: NotificationType,
             recipient: str, success: bool):
        storage.create_activity_log({
            "user_id": None,
            "order_id": order_id,
            "action": f"NOTIFICATION_{notification_type.value.upper()}",
            "details": json.dumps({
                "orderId": order_id,
                "recipient": recipient,
                "success": success,
                "timestamp": datetime.utcnow().isoformat(),
            }),
            "resource_id": order_id,
            "resource_type": "order",
        })

    def send_order_notification(self, order_id: int, notification_type: NotificationType) -> List[bool]:
        """Notify every channel about an order event; returns one flag per channel"""
        try:
            with self.session_factory() as db:
                storage = CateringStorage(db)
                order = storage.get_order(order_id)
                if not order:
                    logger.error(f"Cannot send notification - Order #{order_id} not found")
                    return [False]
                client = storage.get_user(order.user_id)
                if client and client.id == settings.GUEST_USER_ID:
                    client = None
                return self._dispatch(storage, order, client, notification_type)
        except Exception as e:
            logger.error(f"Error sending order notification for order {order_id}: {e}")
            return [False]

    def _dispatch(self, storage: CateringStorage, order: Order, client: Optional[User],
                  notification_type: NotificationType) -> List[bool]:
        results = []

        recipients = self.get_recipients(notification_type, order, client)
        if recipients:
            email_sent = self.send_email(
                recipients,
                self.get_subject(notification_type, order),
                self.render_email(notification_type, order),
            )
            for recipient in recipients:
                self._log(storage, order.id, notification_type, recipient, email_sent)
            results.append(email_sent)
        else:
            logger.warning(f"No recipients for {notification_type.value} on order #{order.order_number}")

        if notification_type == NotificationType.NEW_ORDER and client and client.email:
            confirmation_sent = self.send_email(
                [client.email],
                f"Order Confirmation #{order.order_number} - Air Gourmet Hellas",
                self.render_client_confirmation(order, client),
            )
            self._log(storage, order.id, notification_type, client.email, confirmation_sent)
            results.append(confirmation_sent)

        event = WEBHOOK_EVENTS.get(notification_type)
        if event:
            zapier = self.zapier.configured(storage)
            webhook_sent = zapier.notify_order_event(event, order.id, self._order_payload(order))
            self._log(storage, order.id, notification_type, AUTOMATION_RECIPIENT, webhook_sent)
            results.append(webhook_sent)
            if self.slack.enabled:
                results.append(self.slack.notify_order_event(event, order))

        if notification_type in SMS_TYPES and client and client.phone:
            message = (
                f"Air Gourmet: order {order.order_number} is "
                f"{self._label(order.status).lower()}. Delivery: {order.delivery_location}"
            )
            results.append(self.send_sms(client.phone, message))

        return results

    def _order_payload(self, order: Order) -> Dict:
        return {
            "orderNumber": order.order_number,
            "status": order.status,
            "kitchenLocation": order.kitchen_location,
            "aircraftType": order.aircraft_type,
            "tailNumber": order.tail_number,
            "departureDate": order.departure_date,
            "departureTime": order.departure_time,
            "departureAirport": order.departure_airport,
            "arrivalAirport": order.arrival_airport,
            "passengerCount": order.passenger_count,
            "crewCount": order.crew_count,
            "deliveryLocation": order.delivery_location,
            "deliveryTime": order.delivery_time,
            "totalPrice": order.total_price,
        }

    # ------------------------------------------------------------------
    # Concierge
    # ------------------------------------------------------------------

    def send_concierge_created(self, request_id: int) -> List[bool]:
        try:
            with self.session_factory() as db:
                storage = CateringStorage(db)
                request = storage.get_concierge_request(request_id)
                if not request:
                    logger.error(f"Concierge request {request_id} not found")
                    return [False]
                user = storage.get_user(request.user_id)
                prefix = "[URGENT] " if request.urgent_request else ""
                admin_body = f"""
                <h2>New Concierge Request</h2>
                <p><strong>Type:</strong> {escape(request.request_type)}</p>
                <p><strong>From:</strong> {escape(user.full_name if user else 'Unknown')}</p>
                <p><strong>Delivery:</strong> {escape(request.delivery_date or '-')} {escape(request.delivery_time)} at {escape(request.delivery_location or '-')}</p>
                <p>{escape(request.description)}</p>
                """
                results = [self.send_email([settings.ADMIN_EMAIL], f"{prefix}New Concierge Request Received", admin_body)]
                if user and user.email:
                    client_body = f"""
                    <h2>We received your request</h2>
                    <p>Dear {escape(user.full_name)}, our concierge team will review your {escape(request.request_type)} request and get back to you shortly.</p>
                    """
                    results.append(self.send_email(
                        [user.email], "Your Concierge Service Request Has Been Received", client_body
                    ))
                return results
        except Exception as e:
            logger.error(f"Error sending concierge notification for request {request_id}: {e}")
            return [False]

    def send_concierge_status(self, request_id: int) -> List[bool]:
        try:
            with self.session_factory() as db:
                storage = CateringStorage(db)
                request = storage.get_concierge_request(request_id)
                if not request:
                    logger.error(f"Concierge request {request_id} not found")
                    return [False]
                user = storage.get_user(request.user_id)
                if not user or not user.email:
                    logger.warning(f"No client email for concierge request {request_id}")
                    return [False]
                price = f"<p><strong>Price:</strong> {format_euros(request.price)}</p>" if request.price is not None else ""
                notes = f"<p>{escape(request.price_notes)}</p>" if request.price_notes else ""
                body = f"""
                <h2>Concierge Request Update</h2>
                <p>Dear {escape(user.full_name)}, your {escape(request.request_type)} request is now <strong>{request.status}</strong>.</p>
                {price}{notes}
                """
                return [self.send_email([user.email], f"Concierge Request Update: {request.status.upper()}", body)]
        except Exception as e:
            logger.error(f"Error sending concierge status for request {request_id}: {e}")
            return [False]


notification_service = NotificationService()
