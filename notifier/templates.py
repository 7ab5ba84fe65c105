"""
Notification message templates.

This module builds the title, in-app message and email/SMS content for each
transition kind from an item snapshot. Rendering is deterministic: the same
kind and snapshot always produce the same text.

Design decisions:
- Templates are simple strings with {variable} placeholders
- Titles for upcoming expiry vary with urgency (today, tomorrow, N days)
- The email subject is the notification title; the body is a small HTML document
- All item values are HTML-escaped before they go into the email body
"""

import html
from dataclasses import dataclass

from pantry.models import ItemSnapshot, TransitionKind


CURRENCY_SYMBOL = "₹"


@dataclass
class ComposedNotification:
    """Everything needed to store and deliver one notification."""
    kind: TransitionKind
    title: str
    message: str
    snapshot: ItemSnapshot

    def render_email(self, recipient_name: str) -> tuple[str, str]:
        """
        Render the email for this notification.

        Returns:
            Tuple of (subject, html_body)
        """
        return self.title, render_email_html(recipient_name, self)

    def render_sms(self) -> str:
        return f"{self.title} {self.message}"


# =============================================================================
# Template Definitions
# =============================================================================

TITLES: dict[TransitionKind, str] = {
    TransitionKind.EXPIRED: "❌ Product Has Expired",
    TransitionKind.ITEM_ADDED: "✅ Product Added to Pantry",
    TransitionKind.ITEM_REMOVED: "🗑️ Product Removed from Pantry",
}

MESSAGES: dict[TransitionKind, str] = {
    TransitionKind.UPCOMING_EXPIRY: (
        "{name} ({quantity} {unit}, {currency}{amount}) {urgency}. Category: {category}"
    ),
    TransitionKind.EXPIRED: (
        "{name} ({quantity} {unit}, {currency}{amount}) expired on {expiry_date}. Category: {category}"
    ),
    TransitionKind.ITEM_ADDED: (
        "{name} has been added to your pantry - {quantity} {unit}, {currency}{amount}"
    ),
    TransitionKind.ITEM_REMOVED: "{name} has been removed from your pantry",
}

BANNERS: dict[TransitionKind, str] = {
    TransitionKind.EXPIRED: "This product has expired. Please check it and discard it if it has spoiled.",
    TransitionKind.ITEM_ADDED: "Successfully added to your pantry!",
    TransitionKind.ITEM_REMOVED: "Removed from your pantry",
}

EMAIL_HTML = """<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="margin: 0; font-size: 24px;">🥘 Pantry Manager</h1>
    <h2 style="margin: 10px 0 20px 0; font-size: 20px; font-weight: normal;">{title}</h2>
    <p>Hello <strong>{recipient_name}</strong>,</p>
    <table style="width: 100%; border-collapse: collapse; font-size: 14px;">
{rows}
    </table>
    <p style="font-weight: bold;">{banner}</p>
    <p style="color: #6b7280; font-size: 12px;">
      This is an automated notification from your Pantry Manager.<br>
      You can manage your notification preferences in the app settings.
    </p>
  </body>
</html>
"""

EMAIL_ROW = """      <tr>
        <td style="padding: 8px 12px; font-weight: bold; width: 40%;">{label}:</td>
        <td style="padding: 8px 12px;">{value}</td>
      </tr>"""


# =============================================================================
# Rendering
# =============================================================================

def format_number(value: float) -> str:
    """Render 2.0 as "2" and 2.5 as "2.5"."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def describe_urgency(days_until_expiry: int) -> str:
    if days_until_expiry == 0:
        return "expires today"
    if days_until_expiry == 1:
        return "expires tomorrow"
    return f"expires in {days_until_expiry} days"


def upcoming_title(days_until_expiry: int) -> str:
    if days_until_expiry == 0:
        return "🚨 Product Expires Today!"
    if days_until_expiry == 1:
        return "⚠️ Product Expires Tomorrow!"
    return f"📅 Product Expiring in {days_until_expiry} Days"


def upcoming_banner(days_until_expiry: int) -> str:
    if days_until_expiry == 0:
        return "This product expires today! Please use it immediately."
    if days_until_expiry == 1:
        return "This product expires tomorrow! Please plan to use it soon."
    return f"This product expires in {days_until_expiry} days. Please plan accordingly."


def compose(kind: TransitionKind, snapshot: ItemSnapshot) -> ComposedNotification:
    """
    Build the title and message for a transition.

    Args:
        kind: Transition being notified
        snapshot: Item attributes at notification time; must carry
            days_until_expiry for UPCOMING_EXPIRY

    Raises:
        ValueError: If an upcoming-expiry snapshot has no day count
    """
    kind = TransitionKind(kind)

    if kind == TransitionKind.UPCOMING_EXPIRY:
        if snapshot.days_until_expiry is None:
            raise ValueError("Upcoming expiry notifications need days_until_expiry")
        title = upcoming_title(snapshot.days_until_expiry)
        urgency = describe_urgency(snapshot.days_until_expiry)
    else:
        title = TITLES[kind]
        urgency = ""

    message = MESSAGES[kind].format(
        name=snapshot.name,
        quantity=format_number(snapshot.quantity),
        unit=snapshot.quantity_unit,
        currency=CURRENCY_SYMBOL,
        amount=format_number(snapshot.amount),
        category=snapshot.category,
        expiry_date=snapshot.expiry_date.isoformat() if snapshot.expiry_date else "an unknown date",
        urgency=urgency,
    )
    return ComposedNotification(kind=kind, title=title, message=message, snapshot=snapshot)


def render_email_html(recipient_name: str, composed: ComposedNotification) -> str:
    """Render the HTML email body with a product details table."""
    snapshot = composed.snapshot
    rows = [
        ("Product Name", snapshot.name),
        ("Category", snapshot.category),
        ("Quantity", f"{format_number(snapshot.quantity)} {snapshot.quantity_unit}"),
        ("Cost", f"{CURRENCY_SYMBOL}{format_number(snapshot.amount)}"),
    ]
    if snapshot.expiry_date is not None:
        rows.append(("Expiry Date", snapshot.expiry_date.strftime("%d/%m/%Y")))
    if snapshot.days_until_expiry is not None and composed.kind == TransitionKind.UPCOMING_EXPIRY:
        rows.append(("Days Until Expiry", f"{snapshot.days_until_expiry} days"))

    if composed.kind == TransitionKind.UPCOMING_EXPIRY:
        banner = upcoming_banner(snapshot.days_until_expiry)
    else:
        banner = BANNERS[composed.kind]

    return EMAIL_HTML.format(
        title=html.escape(composed.title),
        recipient_name=html.escape(recipient_name),
        rows="\n".join(
            EMAIL_ROW.format(label=label, value=html.escape(str(value)))
            for label, value in rows
        ),
        banner=html.escape(banner),
    )
