"""
Side effects of a confirmed booking: calendar event with Meet link,
customer confirmation, admin notification and the meeting-link reminder.

Each is a separate BookingConfirmed handler, so a failed calendar call or
SMTP outage never touches the booking or the other notifications.
"""
import logging
import threading
from datetime import datetime, timedelta

from flask import current_app

from integrations.calendar import CalendarError
from services.booking import BookingConfirmed
from utils import email_templates
from utils.emailer import send_email

logger = logging.getLogger(__name__)

REMINDER_LEAD = timedelta(hours=24)


def appointment_start(booking: BookingConfirmed, tz) -> datetime:
    hours, minutes = (int(x) for x in booking.time.split(":"))
    return datetime(booking.day.year, booking.day.month, booking.day.day, hours, minutes, tzinfo=tz)


def send_meeting_link(booking: BookingConfirmed, meeting) -> None:
    text, html = email_templates.meeting_link(booking, meeting)
    ok, error = send_email(
        booking.customer_email,
        f"Google Meet link for your VFX consultation - {booking.day:%d/%m/%Y}",
        text,
        html=html,
    )
    if not ok:
        logger.error("Meeting link email to %s failed: %s", booking.customer_email, error)


def schedule_reminder(booking: BookingConfirmed, meeting, now: datetime):
    """
    Send the Meet link 24h before the start, or right away if that moment
    has passed. Pending reminders live in memory and do not survive a
    restart; the calendar's own email reminders cover that case.
    """
    remind_at = meeting.start - REMINDER_LEAD
    if remind_at <= now:
        send_meeting_link(booking, meeting)
        return None

    app = current_app._get_current_object()

    def _fire():
        with app.app_context():
            send_meeting_link(booking, meeting)

    timer = threading.Timer((remind_at - now).total_seconds(), _fire)
    timer.daemon = True
    timer.start()
    logger.info("Meeting link for payment %s scheduled at %s", booking.payment_id, remind_at.isoformat())
    return timer


def create_calendar_event(booking: BookingConfirmed) -> None:
    calendar = current_app.extensions.get("calendar_client")
    if calendar is None:
        logger.warning("Google Calendar not configured, skipping event for payment %s", booking.payment_id)
        return

    guard = current_app.extensions["slot_guard"]
    admin_email = current_app.config.get("ADMIN_EMAIL") or current_app.config.get("SMTP_FROM_EMAIL")
    attendees = [{"email": booking.customer_email, "displayName": booking.customer_name}]
    if admin_email:
        attendees.append({"email": admin_email})

    lines = [
        "VFX Career Consultation with Valentin Procida",
        "",
        f"Customer: {booking.customer_name}",
        f"Email: {booking.customer_email}",
    ]
    if booking.customer_phone:
        lines.append(f"Phone: {booking.customer_phone}")
    if booking.company:
        lines.append(f"Company: {booking.company}")
    lines.append(f"Paid: {email_templates.euros(booking.amount)}")
    lines.append(f"Transaction: {booking.payment_intent_id}")

    try:
        meeting = calendar.create_meeting(
            start=appointment_start(booking, guard.tz),
            summary=f"VFX Consultation - {booking.customer_name}",
            description="\n".join(lines),
            attendees=attendees,
            request_id=f"meet-{booking.payment_intent_id}",
        )
    except CalendarError as exc:
        logger.error("Calendar event for payment %s failed: %s", booking.payment_id, exc)
        return

    schedule_reminder(booking, meeting, guard.local_now())


def send_customer_confirmation(booking: BookingConfirmed) -> None:
    text, html = email_templates.booking_confirmation(booking)
    ok, error = send_email(booking.customer_email, "Your VFX consultation is confirmed", text, html=html)
    if not ok:
        logger.error("Confirmation email to %s failed: %s", booking.customer_email, error)


def send_admin_notification(booking: BookingConfirmed) -> None:
    admin_email = current_app.config.get("ADMIN_EMAIL")
    if not admin_email:
        return
    text, html = email_templates.admin_notification(booking)
    ok, error = send_email(
        admin_email,
        f"New booking: {booking.customer_name} - {booking.day:%d/%m/%Y} {booking.time}",
        text,
        html=html,
        sender_name="Booking system",
    )
    if not ok:
        logger.error("Admin notification failed: %s", error)


def register_booking_handlers(bus) -> None:
    bus.subscribe(BookingConfirmed, create_calendar_event)
    bus.subscribe(BookingConfirmed, send_customer_confirmation)
    bus.subscribe(BookingConfirmed, send_admin_notification)
