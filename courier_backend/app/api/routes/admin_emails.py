"""
Admin Email Routes

Custom emails to customers. Every attempt is recorded in email_logs.
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import EmailDeliveryError
from app.core.rate_limit import rate_limit
from app.api.deps import get_current_admin
from app.models.audit_log import AuditAction
from app.models.user import User
from app.schemas.common import PaginationParams, envelope, pagination_meta, pagination_params
from app.schemas.email import EmailLogResponse, SendEmailRequest
from app.services.audit_service import AuditService
from app.services.email_service import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/emails",
    tags=["admin-emails"],
    dependencies=[Depends(rate_limit("admin")), Depends(get_current_admin)],
)


@router.get("")
async def list_email_logs(
    page: PaginationParams = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    items, total = await EmailService(db).list_logs(offset=page.offset, limit=page.limit)
    return envelope(
        [EmailLogResponse.model_validate(log).to_wire() for log in items],
        pagination=pagination_meta(total, page.page, page.limit),
    )


@router.post("/send")
async def send_email(
    data: SendEmailRequest,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await EmailService(db).send(
        to=data.to,
        subject=data.subject,
        html_content=data.html_content,
        sent_by=admin.id,
        related_shipment_id=data.related_shipment_id,
    )

    await AuditService(db).log(
        AuditAction.EMAIL_SENT if result.success else AuditAction.EMAIL_FAILED,
        entity_type="email",
        entity_id=data.related_shipment_id,
        user=admin,
        request=request,
        metadata={"to": data.to, "subject": data.subject},
        success=result.success,
    )

    if not result.success:
        # Keep the FAILED log row
        await db.commit()
        raise EmailDeliveryError(result.error or "Failed to send email")

    return envelope({"messageId": result.message_id}, message="Email sent successfully")
