from flask import current_app

from tourdesk.extensions import db
from tourdesk.models import Notification

RECIPIENT_ROLES = {"driver", "customer", "staff"}

EVENT_MESSAGES = {
    "assignment_created": "A driver and vehicle have been assigned to booking {number}.",
    "assignment_removed": "The driver and vehicle assignment for booking {number} was removed.",
    "booking_confirmed": "Booking {number} is confirmed.",
    "booking_cancelled": "Booking {number} was cancelled.",
    "final_payment_due": "The balance for booking {number} is now due.",
    "payment_received": "Payment received for booking {number}.",
}


class NotificationService:
    @staticmethod
    def notify(recipient_role, booking, event_type):
        if recipient_role not in RECIPIENT_ROLES:
            raise ValueError(f"Unknown notification recipient: {recipient_role}")
        template = EVENT_MESSAGES.get(event_type, "Update for booking {number}.")
        notification = Notification(
            booking_id=booking.id,
            recipient_role=recipient_role,
            event_type=event_type,
            message=template.format(number=booking.booking_number),
        )
        db.session.add(notification)
        db.session.commit()
        return notification

    @staticmethod
    def notify_safely(recipient_role, booking, event_type):
        """Queue a notification without letting a delivery failure reach the caller."""
        try:
            return NotificationService.notify(recipient_role, booking, event_type)
        except Exception as exc:
            db.session.rollback()
            current_app.logger.warning(
                "Notification %s to %s for booking %s failed: %s",
                event_type,
                recipient_role,
                booking.id,
                exc,
            )
            return None

    @staticmethod
    def queued_for_booking(booking_id):
        return (
            Notification.query.filter_by(booking_id=booking_id, status="queued")
            .order_by(Notification.created_at.asc(), Notification.id.asc())
            .all()
        )
