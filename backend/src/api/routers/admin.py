"""Admin dashboard endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_admin_user, get_services
from core.auth import SessionUser
from schemas.admin import (
    AdminStats,
    AdminUserListResponse,
    SendEmailRequest,
    SendEmailResponse,
)
from services import admin_service
from services.container import Services
from services.notification_service import send_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    _admin: SessionUser = Depends(get_admin_user),
    services: Services = Depends(get_services),
) -> AdminUserListResponse:
    """List every user with login activity and article counts."""
    return AdminUserListResponse(users=await admin_service.list_users(services))


@router.get("/stats", response_model=AdminStats)
async def get_stats(
    _admin: SessionUser = Depends(get_admin_user),
    services: Services = Depends(get_services),
) -> AdminStats:
    """Totals for users, collections, articles and recent logins."""
    return await admin_service.get_stats(services)


@router.post("/send-email", response_model=SendEmailResponse)
async def send_notification_email(
    data: SendEmailRequest,
    admin: SessionUser = Depends(get_admin_user),
) -> SendEmailResponse:
    """Send a notification email. Delivery is simulated."""
    if not data.to or not data.subject or not data.message:
        raise HTTPException(status_code=400, detail="Missing required fields")
    result = await send_email(data.to, data.subject, data.message)
    logger.info("admin_email_sent by=%s message_id=%s", admin.email, result.message_id)
    return SendEmailResponse(
        success=result.success,
        message_id=result.message_id,
        message="Email sent successfully (simulated)",
    )
