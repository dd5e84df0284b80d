"""Email notifier — SendGrid v3 mail API over httpx.

Without SENDGRID_API_KEY the message is logged instead of sent and reported
as delivered. Delivery problems never propagate: ``send_email`` returns
False and logs.
"""

from __future__ import annotations

import html
import logging

import httpx

from realtysign.core.config import get_settings
from realtysign.core.errors import NotificationDeliveryFailure

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
SIGNATURE = "The RealtySign Team"


async def send_email(
    to: str,
    subject: str,
    html_body: str | None = None,
    text: str | None = None,
    from_email: str | None = None,
) -> bool:
    """Send one message. Returns True when the provider accepted it."""
    settings = get_settings()
    sender = from_email or settings.from_email

    if not settings.sendgrid_api_key:
        logger.info(
            "Email not sent (SENDGRID_API_KEY unset) to=%s from=%s subject=%r",
            to, sender, subject,
        )
        return True

    try:
        await _deliver(settings.sendgrid_api_key, to, sender, subject, html_body, text)
    except NotificationDeliveryFailure:
        logger.exception("Email delivery failed to %s (%s)", to, subject)
        return False

    logger.info("Email sent to %s (%s)", to, subject)
    return True


async def _deliver(
    api_key: str,
    to: str,
    sender: str,
    subject: str,
    html_body: str | None,
    text: str | None,
) -> None:
    content = []
    if text:
        content.append({"type": "text/plain", "value": text})
    if html_body:
        content.append({"type": "text/html", "value": html_body})
    payload = {
        "personalizations": [{"to": [{"email": to}]}],
        "from": {"email": sender},
        "subject": subject,
        "content": content or [{"type": "text/plain", "value": ""}],
    }
    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.post(
                SENDGRID_URL,
                json=payload,
                headers={"Authorization": f"Bearer {api_key}"},
            )
    except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as exc:
        raise NotificationDeliveryFailure(str(exc)) from exc
    if response.status_code >= 400:
        raise NotificationDeliveryFailure(
            f"SendGrid returned {response.status_code}: {response.text[:200]}"
        )


def _panel(color: str, background: str, body: str) -> str:
    return (
        f'<div style="background-color: {background}; padding: 15px; border-radius: 5px; '
        f'margin: 20px 0; border-left: 4px solid {color};">{body}</div>'
    )


def _wrap(title: str, color: str, greeting_name: str, paragraphs: list[str]) -> str:
    inner = "".join(paragraphs)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: {color};">{title}</h2>'
        f"<p>Hello {html.escape(greeting_name)},</p>{inner}"
        f"<p>Best regards,<br>{SIGNATURE}</p></div>"
    )


# ── Message builders ─────────────────────────────────────────


async def send_document_notification(
    recipient_email: str,
    recipient_name: str,
    document_name: str,
    sender_name: str,
    custom_message: str | None = None,
) -> bool:
    body = [
        f"<p>{html.escape(sender_name)} has sent you a document that requires your signature:</p>",
        _panel("#333", "#f8f9fa", f"<strong>{html.escape(document_name)}</strong>"),
    ]
    if custom_message:
        body.append(f"<p><em>{html.escape(custom_message)}</em></p>")
    body.append("<p>Please review and sign the document at your earliest convenience.</p>")
    return await send_email(
        recipient_email,
        f"Please sign: {document_name}",
        html_body=_wrap("Document Signature Required", "#333", recipient_name, body),
    )


async def send_usage_alert_notification(
    user_email: str,
    user_name: str,
    usage_type: str,
    current_usage: int,
    limit: int,
    percentage_used: int,
) -> bool:
    body = [
        f"<p>You have used <strong>{percentage_used}%</strong> of your monthly "
        f"{html.escape(usage_type)} limit.</p>",
        _panel(
            "#ffc107",
            "#fff3cd",
            f"<strong>Current Usage:</strong> {current_usage} / {limit} {html.escape(usage_type)}<br>"
            f"<strong>Percentage Used:</strong> {percentage_used}%",
        ),
        "<p>Consider upgrading your plan to avoid service interruptions.</p>",
    ]
    return await send_email(
        user_email,
        f"Usage Alert: {percentage_used}% of {usage_type} limit reached",
        html_body=_wrap("Usage Alert", "#ffc107", user_name, body),
    )


async def send_signing_reminder_notification(
    recipient_email: str,
    recipient_name: str,
    document_name: str,
    sender_name: str,
    days_waiting: int,
) -> bool:
    plural = "s" if days_waiting != 1 else ""
    body = [
        "<p>This is a friendly reminder that you have a document waiting for your signature:</p>",
        _panel(
            "#ffc107",
            "#fff3cd",
            f"<strong>{html.escape(document_name)}</strong><br>"
            f"From: {html.escape(sender_name)}<br>Waiting: {days_waiting} day{plural}",
        ),
        "<p>Please review and sign the document to keep the transaction moving forward.</p>",
    ]
    return await send_email(
        recipient_email,
        f"Reminder: Please sign {document_name}",
        html_body=_wrap("Signature Reminder", "#ffc107", recipient_name, body),
    )


async def send_document_completed_notification(
    agent_email: str,
    agent_name: str,
    document_name: str,
    property_address: str,
) -> bool:
    body = [
        "<p>The following document has been fully executed:</p>",
        _panel(
            "#28a745",
            "#e8f5e8",
            f"<strong>{html.escape(document_name)}</strong><br>{html.escape(property_address)}",
        ),
        "<p>All parties have signed. You can download the completed document from your dashboard.</p>",
    ]
    return await send_email(
        agent_email,
        f"Document Completed: {document_name}",
        html_body=_wrap("Document Signing Complete", "#28a745", agent_name, body),
    )


async def send_document_failed_notification(
    agent_email: str,
    agent_name: str,
    document_name: str,
    error_reason: str,
) -> bool:
    body = [
        "<p>Unfortunately, there was an issue processing your document:</p>",
        _panel(
            "#dc3545",
            "#f8d7da",
            f"<strong>{html.escape(document_name)}</strong><br>"
            f"<strong>Error:</strong> {html.escape(error_reason)}",
        ),
        "<p>Please try uploading the document again, or contact support if the issue persists.</p>",
    ]
    return await send_email(
        agent_email,
        f"Document Processing Failed: {document_name}",
        html_body=_wrap("Document Processing Failed", "#dc3545", agent_name, body),
    )
