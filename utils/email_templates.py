from html import escape

BOOKING_URL = "https://www.valentinprocida.it/buy.html"

_LAYOUT = """<!DOCTYPE html>
<html>
  <head><meta charset="UTF-8"><title>{title}</title></head>
  <body style="margin: 0; padding: 0; font-family: 'Segoe UI', Tahoma, sans-serif; background: #f4f5fb;">
    <div style="max-width: 650px; margin: 0 auto; background: white;">
      <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); padding: 40px; text-align: center;">
        <h1 style="color: white; margin: 0; font-size: 26px; font-weight: 300;">{title}</h1>
      </div>
      <div style="padding: 40px; color: #2c3e50; font-size: 16px; line-height: 1.6;">
        {content}
      </div>
      <div style="background: #2c3e50; color: white; padding: 20px; text-align: center; font-size: 13px;">
        VFX Consulting - Valentin Procida
      </div>
    </div>
  </body>
</html>"""


def euros(cents: int) -> str:
    return f"€{cents / 100:.2f}"


def _rows(pairs) -> str:
    cells = "".join(
        f'<tr><td style="padding: 10px 0; color: #6c757d;">{escape(k)}</td>'
        f'<td style="padding: 10px 0; font-weight: 600; text-align: right;">{escape(str(v))}</td></tr>'
        for k, v in pairs if v
    )
    return f'<table style="width: 100%; border-collapse: collapse;">{cells}</table>'


def _text_rows(pairs) -> str:
    return "\n".join(f"{k}: {v}" for k, v in pairs if v)


def booking_details(booking) -> list:
    discount = None
    if booking.discount_code:
        discount = f"{booking.discount_code} (-{euros(booking.discount_amount)})"
    return [
        ("Date", booking.day.strftime("%A %d %B %Y")),
        ("Time", booking.time),
        ("Duration", "90 minutes"),
        ("Paid", euros(booking.amount)),
        ("Discount", discount),
    ]


def booking_confirmation(booking):
    pairs = booking_details(booking)
    html = _LAYOUT.format(
        title="Booking confirmed",
        content=(
            f"<p>Hi {escape(booking.customer_name)},</p>"
            "<p>Your VFX consultation is confirmed. You will receive the Google Meet link "
            "24 hours before the appointment.</p>"
            + _rows(pairs)
        ),
    )
    text = (
        f"Hi {booking.customer_name},\n\n"
        "Your VFX consultation is confirmed.\n\n"
        f"{_text_rows(pairs)}\n\n"
        "You will receive the Google Meet link 24 hours before the appointment.\n"
    )
    return text, html


def admin_notification(booking):
    pairs = [
        ("Customer", booking.customer_name),
        ("Email", booking.customer_email),
        ("Phone", booking.customer_phone),
        ("Company", booking.company),
        ("Payment", booking.payment_intent_id),
    ] + booking_details(booking)
    html = _LAYOUT.format(title="New booking", content=_rows(pairs))
    return _text_rows(pairs) + "\n", html


def meeting_link(booking, meeting):
    link = meeting.meet_link or meeting.event_link or ""
    html = _LAYOUT.format(
        title="Your Google Meet link",
        content=(
            f"<p>Hi {escape(booking.customer_name)},</p>"
            "<p>Here is the link for your consultation:</p>"
            f'<p style="text-align: center;"><a href="{escape(link)}" '
            'style="display: inline-block; padding: 14px 24px; background: #667eea; color: white; '
            f'text-decoration: none; border-radius: 8px;">Join the meeting</a></p>'
            + _rows(booking_details(booking)[:3])
        ),
    )
    text = (
        f"Hi {booking.customer_name},\n\n"
        f"Join your consultation here: {link}\n\n"
        f"{_text_rows(booking_details(booking)[:3])}\n"
    )
    return text, html


def discount_code(name, code: str, percent: int):
    greeting = f"Hi {name}!" if name else "Hi there!"
    html = _LAYOUT.format(
        title=f"Your {percent}% discount code",
        content=(
            f"<p>{escape(greeting)}</p>"
            "<p>Thank you for your interest in my VFX consultation services!</p>"
            f'<p style="text-align: center; font-size: 28px; letter-spacing: 3px; font-weight: 700;">{escape(code)}</p>'
            f"<p>This code gives you {percent}% off your consultation.</p>"
            f'<p><a href="{BOOKING_URL}">Book now</a></p>'
        ),
    )
    text = (
        f"{greeting}\n\n"
        "Thank you for your interest in my VFX consultation services!\n\n"
        f"Your discount code: {code}\n"
        f"This code gives you {percent}% off your consultation.\n\n"
        f"Book now: {BOOKING_URL}\n"
    )
    return text, html
