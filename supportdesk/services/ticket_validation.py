"""
Ticket form validation.
Pure checks shared by the HTTP layer and the submission workflow, so the
same rules hold no matter which client filled in the form.
"""
import os
from typing import Iterable, Optional

from supportdesk.core.config import settings
from supportdesk.core.exceptions import TicketValidationError
from supportdesk.schemas.ticket_schema import Attachment, Category, Priority, Product, TicketForm

REQUIRED_FIELDS = ("subject", "message", "category", "purchase_code")


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


def ticket_form_problems(form: TicketForm) -> list[str]:
    problems: list[str] = []

    for field in REQUIRED_FIELDS:
        if not getattr(form, field, "").strip():
            problems.append(f"{field} is required")

    if form.priority not in _enum_values(Priority):
        problems.append(f"priority must be one of: {', '.join(_enum_values(Priority))}")
    # An empty category is already reported as missing
    if form.category.strip() and form.category not in _enum_values(Category):
        problems.append(f"category must be one of: {', '.join(_enum_values(Category))}")
    if form.product not in _enum_values(Product):
        problems.append(f"product must be one of: {', '.join(_enum_values(Product))}")

    return problems


def attachment_problems(
    attachments: Iterable[Attachment],
    *,
    allowed_extensions: Optional[set[str]] = None,
    max_bytes: Optional[int] = None,
) -> list[str]:
    allowed = allowed_extensions if allowed_extensions is not None else settings.allowed_attachment_extensions
    limit = max_bytes if max_bytes is not None else settings.MAX_ATTACHMENT_BYTES

    problems: list[str] = []
    for attachment in attachments:
        name = attachment.name or ""
        if not name.strip():
            problems.append("attachment name is required")
            continue
        if "/" in name or "\\" in name or ".." in name:
            problems.append(f"{name}: invalid file name")
            continue
        ext = os.path.splitext(name)[1].lower()
        if ext not in allowed:
            problems.append(f"{name}: unsupported file type")
        if attachment.size > limit:
            problems.append(f"{name}: file is larger than {limit} bytes")
    return problems


def validate_ticket_form(form: TicketForm) -> TicketForm:
    problems = ticket_form_problems(form)
    if problems:
        raise TicketValidationError(problems)
    return form


def validate_attachments(attachments: Iterable[Attachment], **limits) -> None:
    problems = attachment_problems(attachments, **limits)
    if problems:
        raise TicketValidationError(problems)
