"""
Email service

Sends through the provider and records every attempt in email_logs.
Templates are deliberately plain: subject lines and a short HTML body.
"""
import html
import logging
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.email_log import EmailLog, EmailStatus
from app.services.email_provider import ResendProvider, SendResult, email_provider

logger = logging.getLogger(__name__)


def status_text(status: str) -> str:
    return str(status).replace("_", " ")


def tracking_url(tracking_code: str) -> str:
    return f"{settings.PUBLIC_SITE_URL.rstrip('/')}/track?code={tracking_code}"


def _wrap(body: str, company_name: str) -> str:
    return (
        "<div style=\"font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;\">"
        f"{body}"
        f"<p style=\"color: #64748b; font-size: 12px;\">{html.escape(company_name)}</p>"
        "</div>"
    )


def render_shipment_created(
    receiver_name: str,
    tracking_code: str,
    origin: str,
    destination: str,
    company_name: str,
) -> Tuple[str, str]:
    subject = f"Your Shipment {tracking_code} Has Been Created - {company_name}"
    body = (
        f"<p>Hello {html.escape(receiver_name)},</p>"
        f"<p>A shipment to you has been created.</p>"
        f"<p><strong>Tracking code:</strong> {html.escape(tracking_code)}<br>"
        f"<strong>From:</strong> {html.escape(origin)}<br>"
        f"<strong>To:</strong> {html.escape(destination)}</p>"
        f"<p><a href=\"{html.escape(tracking_url(tracking_code))}\">Track your shipment</a></p>"
    )
    return subject, _wrap(body, company_name)


def render_status_update(
    receiver_name: str,
    tracking_code: str,
    status: str,
    location: str,
    description: str,
    company_name: str,
) -> Tuple[str, str]:
    text = status_text(status)
    subject = f"Shipment {tracking_code} Update: {text} - {company_name}"
    details = f"<p><strong>Details:</strong> {html.escape(description)}</p>" if description else ""
    body = (
        f"<p>Hello {html.escape(receiver_name)},</p>"
        f"<p>Your shipment <strong>{html.escape(tracking_code)}</strong> is now "
        f"<strong>{html.escape(text)}</strong>.</p>"
        f"<p><strong>Location:</strong> {html.escape(location)}</p>"
        f"{details}"
        f"<p><a href=\"{html.escape(tracking_url(tracking_code))}\">Track your shipment</a></p>"
    )
    return subject, _wrap(body, company_name)


def render_quote_response(
    name: str,
    origin: str,
    destination: str,
    price: float,
    admin_response: str,
    company_name: str,
) -> Tuple[str, str]:
    subject = f"Your Quote Response: {origin} → {destination} - {company_name}"
    body = (
        f"<p>Hello {html.escape(name)},</p>"
        f"<p>Thank you for your quote request from {html.escape(origin)} "
        f"to {html.escape(destination)}.</p>"
        f"<p><strong>Quoted price:</strong> ${price:,.2f}</p>"
        f"<p>{html.escape(admin_response)}</p>"
    )
    return subject, _wrap(body, company_name)


class EmailService:
    """Send + log. One EmailLog row per attempt."""

    def __init__(self, db: AsyncSession, provider: Optional[ResendProvider] = None):
        self.db = db
        self.provider = provider or email_provider

    async def send(
        self,
        to: str,
        subject: str,
        html_content: str,
        sent_by: Optional[int] = None,
        related_shipment_id: Optional[int] = None,
    ) -> SendResult:
        result = await self.provider.send(to, subject, html_content)

        self.db.add(EmailLog(
            to=to,
            subject=subject[:200],
            html_content=html_content,
            related_shipment_id=related_shipment_id,
            sent_by=sent_by,
            status=EmailStatus.SENT if result.success else EmailStatus.FAILED,
            error_message=result.error,
            provider_message_id=result.message_id,
        ))
        await self.db.flush()

        if result.success:
            logger.info(f"Email sent to {to}: {subject}")
        else:
            logger.warning(f"Email to {to} failed: {result.error}")
        return result

    async def list_logs(self, offset: int, limit: int) -> Tuple[list, int]:
        total = (await self.db.execute(select(func.count(EmailLog.id)))).scalar_one()
        result = await self.db.execute(
            select(EmailLog)
            .order_by(EmailLog.created_at.desc(), EmailLog.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total
