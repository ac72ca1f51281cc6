"""
Notification Dispatcher

Fire-and-forget email notifications that run after the HTTP response path
has committed. At-most-once: a failed send is logged (and recorded in
email_logs by EmailService), never retried, never surfaced to the caller.

Each notification opens its own DB session; only primitive values cross the
boundary, never ORM objects from the request session.
"""
import asyncio
import logging
from typing import Awaitable, Optional, Set

from app.core.database import get_db_session
from app.services.company_settings import CompanySettingsService
from app.services.email_service import (
    EmailService,
    render_quote_response,
    render_shipment_created,
    render_status_update,
)

logger = logging.getLogger(__name__)


class NotificationDispatcher:

    def __init__(self):
        # Strong references; the event loop only keeps weak ones
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Awaitable, name: str = "notification") -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Notification {task.get_name()} cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Notification {task.get_name()} failed: {type(exc).__name__}: {exc}",
                exc_info=exc,
            )

    async def drain(self, timeout: Optional[float] = 10.0) -> None:
        """Wait for in-flight notifications (shutdown, tests)."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} notifications still running after {timeout}s")

    # ----- notifications -----

    def shipment_created(
        self,
        receiver_email: str,
        receiver_name: str,
        tracking_code: str,
        origin: str,
        destination: str,
        sent_by: Optional[int],
        shipment_id: int,
    ) -> asyncio.Task:
        return self.submit(
            self._send_shipment_created(
                receiver_email, receiver_name, tracking_code, origin, destination, sent_by, shipment_id
            ),
            name=f"shipment_created:{tracking_code}",
        )

    def status_updated(
        self,
        receiver_email: str,
        receiver_name: str,
        tracking_code: str,
        status: str,
        location: str,
        description: str,
        sent_by: Optional[int],
        shipment_id: int,
    ) -> asyncio.Task:
        return self.submit(
            self._send_status_update(
                receiver_email, receiver_name, tracking_code, status, location, description,
                sent_by, shipment_id,
            ),
            name=f"status_updated:{tracking_code}",
        )

    def quote_responded(
        self,
        email: str,
        name: str,
        origin: str,
        destination: str,
        price: float,
        admin_response: str,
        sent_by: Optional[int],
    ) -> asyncio.Task:
        return self.submit(
            self._send_quote_response(email, name, origin, destination, price, admin_response, sent_by),
            name=f"quote_responded:{email}",
        )

    async def _send_shipment_created(
        self, to, receiver_name, tracking_code, origin, destination, sent_by, shipment_id
    ):
        async with get_db_session() as db:
            company = await CompanySettingsService(db).company_name()
            subject, body = render_shipment_created(
                receiver_name, tracking_code, origin, destination, company
            )
            await EmailService(db).send(
                to, subject, body, sent_by=sent_by, related_shipment_id=shipment_id
            )

    async def _send_status_update(
        self, to, receiver_name, tracking_code, status, location, description, sent_by, shipment_id
    ):
        async with get_db_session() as db:
            company = await CompanySettingsService(db).company_name()
            subject, body = render_status_update(
                receiver_name, tracking_code, status, location, description, company
            )
            await EmailService(db).send(
                to, subject, body, sent_by=sent_by, related_shipment_id=shipment_id
            )

    async def _send_quote_response(self, to, name, origin, destination, price, admin_response, sent_by):
        async with get_db_session() as db:
            company = await CompanySettingsService(db).company_name()
            subject, body = render_quote_response(
                name, origin, destination, price, admin_response, company
            )
            await EmailService(db).send(to, subject, body, sent_by=sent_by)


notifier = NotificationDispatcher()


def get_notifier() -> NotificationDispatcher:
    """FastAPI dependency; tests override it with a recorder."""
    return notifier
