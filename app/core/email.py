# app/core/email.py
"""
Email service using Resend for demo request notifications.

Every sender returns a result dict instead of raising: a failed email is
logged and must never fail the request that triggered it.
"""

import logging

import resend

from app.core.config import settings
from app.utils.calendar_utils import generate_demo_ics, generate_ics_filename

logger = logging.getLogger(__name__)

_STYLE = """
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }
        .content { background: #f9f9f9; padding: 30px; border-radius: 0 0 10px 10px; }
        .details { background: white; padding: 15px; border-radius: 8px; margin: 15px 0; }
        .footer { text-align: center; color: #888; font-size: 12px; margin-top: 20px; }
"""


def init_resend():
    """Initialize Resend with API key."""
    resend.api_key = settings.RESEND_API_KEY


def _render(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <style>{_STYLE}</style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h1>{title}</h1>
            </div>
            <div class="content">
                {body}
            </div>
            <div class="footer">
                <p>Questions? Write to {settings.SUPPORT_EMAIL}</p>
            </div>
        </div>
    </body>
    </html>
    """


def _details(demo) -> str:
    company = f"<p><strong>Company:</strong> {demo.company}</p>" if demo.company else ""
    phone = f"<p><strong>Phone:</strong> {demo.phone}</p>" if demo.phone else ""
    return f"""
                <div class="details">
                    <p><strong>Demo:</strong> {demo.demo_type_label}</p>
                    <p><strong>Requested time:</strong> {demo.formatted_preferred_datetime}</p>
                    <p><strong>Name:</strong> {demo.name}</p>
                    <p><strong>Email:</strong> {demo.email}</p>
                    {company}
                    {phone}
                    <p><strong>Reference:</strong> {demo.id}</p>
                </div>
    """


def _send(params: dict, kind: str, demo_request_id: str) -> dict:
    if not settings.EMAILS_ENABLED:
        logger.debug(f"Emails disabled, skipping {kind} for demo request {demo_request_id}")
        return {"success": False, "skipped": True}

    init_resend()
    try:
        response = resend.Emails.send(params)
        logger.info(f"Sent {kind} email for demo request {demo_request_id}")
        return {"success": True, "id": response.get("id")}
    except Exception as e:
        logger.error(
            f"Failed to send {kind} email for demo request {demo_request_id}: {e}",
            exc_info=True,
            extra={"demo_request_id": demo_request_id},
        )
        return {"success": False, "error": str(e)}


def send_demo_request_notification(demo) -> dict:
    """Tell the demo team that a new request came in."""
    message = f"<p><strong>Message:</strong> {demo.message}</p>" if demo.message else ""
    body = f"""
                <p>A new demo request was submitted via <strong>{demo.source}</strong>.</p>
                {_details(demo)}
                {message}
    """
    params = {
        "from": f"Demo Scheduling <noreply@{settings.RESEND_FROM_DOMAIN}>",
        "to": [settings.DEMO_TEAM_EMAIL],
        "reply_to": demo.email,
        "subject": f"New {demo.demo_type_label} request from {demo.name}",
        "html": _render("New Demo Request", body),
    }
    return _send(params, "team notification", demo.id)


def send_demo_request_received(demo) -> dict:
    """Acknowledge a request to the person who made it."""
    body = f"""
                <p>Hi {demo.name},</p>
                <p>Thanks for your interest! We've received your demo request and our team
                will confirm the time with you within 24 hours.</p>
                {_details(demo)}
                <p>Best regards,<br>The Demo Team</p>
    """
    params = {
        "from": f"Demo Team <noreply@{settings.RESEND_FROM_DOMAIN}>",
        "to": [demo.email],
        "subject": "We received your demo request",
        "html": _render("Demo Request Received", body),
    }
    return _send(params, "request received", demo.id)


def send_demo_confirmed(demo) -> dict:
    """Confirm the scheduled time to the requester, with a calendar invite attached."""
    body = f"""
                <p>Hi {demo.name},</p>
                <p>Your <strong>{demo.demo_type_label}</strong> is confirmed for
                <strong>{demo.formatted_confirmed_datetime}</strong>.</p>
                <p>The attached invite adds it to your calendar. The meeting link will
                follow before the demo.</p>
                <p>Best regards,<br>The Demo Team</p>
    """
    params = {
        "from": f"Demo Team <noreply@{settings.RESEND_FROM_DOMAIN}>",
        "to": [demo.email],
        "subject": f"Your demo is confirmed: {demo.formatted_confirmed_datetime}",
        "html": _render("Your Demo Is Confirmed", body),
        "attachments": [
            {
                "filename": generate_ics_filename(demo),
                "content": list(generate_demo_ics(demo)),
            }
        ],
    }
    return _send(params, "confirmation", demo.id)
