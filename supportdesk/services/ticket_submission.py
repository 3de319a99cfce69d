"""
Ticket Submission Workflow
Creates a ticket, its opening message and one message per uploaded
attachment, then sends the user to the ticket list.

Steps run strictly in order (ticket -> initial message -> attachments);
only the attachments are processed concurrently. Nothing is rolled back on
failure: a ticket without its opening message, or with only some of its
attachments, is left in place and logged.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from supportdesk.core.config import settings
from supportdesk.core.exceptions import AttachmentError, SubmissionClosedError, SupportDeskError
from supportdesk.schemas.ticket_schema import Attachment, TicketForm, TicketStatus
from supportdesk.services.stores import (
    TICKET_MESSAGES,
    TICKETS,
    BlobStorage,
    Navigator,
    RecordStore,
    attachment_path,
)
from supportdesk.services.ticket_validation import validate_attachments, validate_ticket_form

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Failed to create ticket"
FALLBACK_DETAIL = "Please try again."


class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class SubmissionResult:
    accepted: bool
    state: SubmissionState
    ticket_id: Optional[Any] = None
    error: Optional[str] = None
    redirect_to: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state == SubmissionState.SUCCESS


def format_error(exc: BaseException) -> str:
    detail = str(exc).strip() or FALLBACK_DETAIL
    return f"{ERROR_PREFIX}: {detail}"


def attachment_message(file_name: str) -> str:
    return f"Attachment: {file_name}"


class TicketSubmission:
    """One ticket form and its submission state for a single user."""

    def __init__(
        self,
        user_id: Any,
        store: RecordStore,
        storage: BlobStorage,
        navigate: Navigator,
        *,
        bucket: Optional[str] = None,
        success_route: Optional[str] = None,
    ):
        self.user_id = user_id
        self.store = store
        self.storage = storage
        self.navigate = navigate
        self.bucket = bucket or settings.ATTACHMENTS_BUCKET
        self.success_route = success_route or settings.TICKET_LIST_ROUTE

        self.state = SubmissionState.IDLE
        self.error: Optional[str] = None
        self.attachments: list[Attachment] = []

    @property
    def submitting(self) -> bool:
        return self.state == SubmissionState.SUBMITTING

    # === Local attachment selection ===
    def add_attachments(self, files: Iterable[Attachment]) -> None:
        self.attachments = [*self.attachments, *files]

    def remove_attachment(self, index: int) -> Attachment:
        if index < 0 or index >= len(self.attachments):
            raise IndexError(f"No attachment at position {index}")
        removed = self.attachments[index]
        self.attachments = [a for i, a in enumerate(self.attachments) if i != index]
        return removed

    # === Submission ===
    async def submit(self, form: TicketForm) -> SubmissionResult:
        if self.state == SubmissionState.SUCCESS:
            raise SubmissionClosedError("This ticket has already been submitted")
        if self.state == SubmissionState.SUBMITTING:
            logger.debug("Ignoring submit for user %s: a submission is in progress", self.user_id)
            return SubmissionResult(accepted=False, state=self.state)

        self.state = SubmissionState.SUBMITTING
        self.error = None
        ticket_id = None
        try:
            validate_ticket_form(form)
            validate_attachments(self.attachments)

            ticket = await self.store.insert(TICKETS, {
                "user_id": self.user_id,
                "subject": form.subject,
                "status": TicketStatus.OPEN.value,
                "priority": form.priority,
                "category": form.category,
                "product": form.product,
                "purchase_code": form.purchase_code,
            })
            ticket_id = ticket["id"]
            logger.info("Created ticket #%s for user %s", ticket_id, self.user_id)

            await self.store.insert(TICKET_MESSAGES, {
                "ticket_id": ticket_id,
                "user_id": self.user_id,
                "message": form.message,
                "is_agent": False,
            })

            if self.attachments:
                await asyncio.gather(
                    *(self._store_attachment(ticket_id, a) for a in self.attachments)
                )
        except SupportDeskError as e:
            return self._fail(e, ticket_id)
        except Exception as e:
            logger.exception("Unexpected error while creating ticket for user %s", self.user_id)
            return self._fail(e, ticket_id)

        self.state = SubmissionState.SUCCESS
        self.navigate(self.success_route)
        return SubmissionResult(
            accepted=True,
            state=self.state,
            ticket_id=ticket_id,
            redirect_to=self.success_route,
        )

    async def _store_attachment(self, ticket_id: Any, attachment: Attachment) -> None:
        path = attachment_path(ticket_id, attachment.name)
        try:
            await self.storage.upload(self.bucket, path, attachment.content, attachment.content_type)
            await self.store.insert(TICKET_MESSAGES, {
                "ticket_id": ticket_id,
                "user_id": self.user_id,
                "message": attachment_message(attachment.name),
                "is_agent": False,
            })
        except SupportDeskError as e:
            raise AttachmentError(attachment.name, str(e)) from e

    def _fail(self, exc: BaseException, ticket_id: Any) -> SubmissionResult:
        if ticket_id is not None:
            logger.warning("Ticket #%s left incomplete: %s", ticket_id, exc, exc_info=exc)
        else:
            logger.error("Ticket submission failed for user %s: %s", self.user_id, exc, exc_info=exc)
        self.state = SubmissionState.FAILED
        self.error = format_error(exc)
        return SubmissionResult(
            accepted=True,
            state=self.state,
            ticket_id=ticket_id,
            error=self.error,
        )
