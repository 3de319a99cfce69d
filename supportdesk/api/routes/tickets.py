import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from supportdesk.api.dependencies import get_db, get_record_store, get_storage
from supportdesk.api.security import get_current_user
from supportdesk.core.config import settings
from supportdesk.models.ticket import Ticket, TicketMessage
from supportdesk.models.user import User
from supportdesk.schemas.ticket_schema import (
    Attachment,
    Priority,
    Product,
    TicketCreatedResponse,
    TicketDetail,
    TicketForm,
    TicketMessageResponse,
    TicketResponse,
)
from supportdesk.services.stores import BlobStorage, RecordingNavigator, SqlRecordStore
from supportdesk.services.ticket_submission import TicketSubmission
from supportdesk.services.ticket_validation import attachment_problems, ticket_form_problems

logger = logging.getLogger(__name__)
router = APIRouter()


async def _read_attachments(files: Optional[List[UploadFile]]) -> list[Attachment]:
    # Reading one byte past the limit is enough to flag an oversized file
    limit = settings.MAX_ATTACHMENT_BYTES + 1
    attachments: list[Attachment] = []
    for f in files or []:
        # Browsers send an empty part when no file was picked
        if not f.filename:
            continue
        attachments.append(
            Attachment(name=f.filename, content=await f.read(limit), content_type=f.content_type)
        )
    return attachments


@router.post("/", response_model=TicketCreatedResponse, status_code=201)
async def create_ticket(
    subject: str = Form(""),
    message: str = Form(""),
    priority: str = Form(Priority.NORMAL.value),
    category: str = Form(""),
    product: str = Form(Product.JOBPILOT.value),
    purchase_code: str = Form(""),
    files: Optional[List[UploadFile]] = File(None),
    store: SqlRecordStore = Depends(get_record_store),
    storage: BlobStorage = Depends(get_storage),
    user: User = Depends(get_current_user),
):
    form = TicketForm(
        subject=subject,
        message=message,
        priority=priority,
        category=category,
        product=product,
        purchase_code=purchase_code,
    )
    attachments = await _read_attachments(files)

    problems = ticket_form_problems(form) + attachment_problems(attachments)
    if problems:
        raise HTTPException(status_code=422, detail=problems)

    navigator = RecordingNavigator()
    submission = TicketSubmission(user.id, store, storage, navigator)
    submission.add_attachments(attachments)

    result = await submission.submit(form)
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.error)

    return TicketCreatedResponse(ticket_id=result.ticket_id, redirect_to=navigator.route)


@router.get("/", response_model=list[TicketResponse])
def list_tickets(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return (
        db.query(Ticket)
        .filter(Ticket.user_id == user.id)
        .order_by(Ticket.id.desc())
        .all()
    )


@router.get("/{ticket_id}", response_model=TicketDetail)
def get_ticket(
    ticket_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ticket = (
        db.query(Ticket)
        .filter(Ticket.id == ticket_id, Ticket.user_id == user.id)
        .first()
    )
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")

    messages = (
        db.query(TicketMessage)
        .filter(TicketMessage.ticket_id == ticket.id)
        .order_by(TicketMessage.id.asc())
        .all()
    )

    return TicketDetail(
        ticket=TicketResponse.model_validate(ticket),
        messages=[TicketMessageResponse.model_validate(m) for m in messages],
    )
