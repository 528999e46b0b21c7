"""Stub notification sender. Nothing leaves the process; sends are logged."""
import logging
from dataclasses import dataclass
from typing import Literal
from uuid import uuid4

logger = logging.getLogger(__name__)

LoginType = Literal["login", "register", "sso"]


@dataclass
class SendResult:
    """Outcome of a (simulated) send."""

    success: bool
    message_id: str


async def send_email(to: str, subject: str, message: str) -> SendResult:
    """Simulate sending an email."""
    message_id = str(uuid4())
    logger.info(
        "email_simulated to=%s subject=%r message_id=%s length=%s",
        to,
        subject,
        message_id,
        len(message),
    )
    return SendResult(success=True, message_id=message_id)


async def send_login_notification(email: str, name: str, login_type: LoginType) -> None:
    """Record a login/registration event for the admins."""
    verb = "registered" if login_type == "register" else "logged in"
    via = "via SSO" if login_type == "sso" else "with credentials"
    logger.info(
        "login_notification type=%s user=%s email=%s: %s %s",
        login_type,
        name,
        email,
        verb,
        via,
    )
