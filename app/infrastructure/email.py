"""Transactional email delivery through the SendGrid REST API."""

from __future__ import annotations

import json
import logging
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from app.config import get_settings

logger = logging.getLogger(__name__)


def describe_sendgrid_error(body: Any) -> str | None:
    """Turn a SendGrid error body into one readable line."""

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            body = json.loads(body)
        except json.JSONDecodeError:
            return body
    if not body:
        return None

    if isinstance(body, dict) and isinstance(body.get("errors"), list):
        messages = []
        for item in body["errors"]:
            if not isinstance(item, dict) or not item.get("message"):
                continue
            if item.get("help"):
                messages.append(f"{item['message']} (help: {item['help']})")
            else:
                messages.append(str(item["message"]))
        if messages:
            return "; ".join(messages)
    if isinstance(body, list):
        return "; ".join(str(item) for item in body)
    try:
        return json.dumps(body)
    except (TypeError, ValueError):
        return None


def _log_failure(source: Any, recipient: str) -> None:
    status_code = getattr(source, "status_code", None)
    details = describe_sendgrid_error(getattr(source, "body", None))
    if status_code is None and details is None and isinstance(source, Exception):
        logger.error("Email to %s could not be sent: %s", recipient, source, exc_info=source)
        return
    logger.error(
        "SendGrid rejected email to %s with status %s: %s",
        recipient,
        status_code,
        details or "no details",
    )


def send_email(
    subject: str,
    html_content: str,
    recipient: str,
    text_content: str | None = None,
) -> bool:
    """Send one message; return ``False`` when it was not accepted."""

    settings = get_settings()
    if not (settings.sendgrid_api_key and settings.sendgrid_sender):
        logger.info("SendGrid configuration incomplete; skipping email to %s", recipient)
        return False

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
        plain_text_content=text_content or None,
    )

    try:
        response = SendGridAPIClient(settings.sendgrid_api_key).send(message)
    except Exception as exc:
        _log_failure(exc, recipient)
        return False

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        _log_failure(response, recipient)
        return False

    logger.debug("Email '%s' accepted by SendGrid for %s", subject, recipient)
    return True


__all__ = ["describe_sendgrid_error", "send_email"]
