from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class Category(str, Enum):
    INSTALLATION_SUPPORT = "Installation Support"
    PRODUCT_ISSUE = "Product Issue"
    BILLING_ISSUE = "Billing Issue"
    FEATURE_REQUEST = "Feature Request"
    GENERAL_INQUIRY = "General Inquiry"


class Product(str, Enum):
    JOBPILOT = "JobPilot"
    RECRUITX = "RecruitX"


class TicketForm(BaseModel):
    """Raw ticket form state, as filled in by the user.

    Fields stay plain strings so that enum membership is checked by
    ``validate_ticket_form`` together with the other rules.
    """

    subject: str = ""
    message: str = ""
    priority: str = Priority.NORMAL.value
    category: str = ""
    product: str = Product.JOBPILOT.value
    purchase_code: str = ""


@dataclass
class Attachment:
    name: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


class TicketResponse(BaseModel):
    id: int
    subject: str
    status: str
    priority: str
    category: str
    product: str
    purchase_code: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TicketMessageResponse(BaseModel):
    id: int
    ticket_id: int
    message: str
    is_agent: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TicketDetail(BaseModel):
    ticket: TicketResponse
    messages: list[TicketMessageResponse]


class TicketCreatedResponse(BaseModel):
    ticket_id: int
    redirect_to: str
