"""
Schemas for the registrations service

Each Pydantic model is one shape that crosses a boundary: the static event
table, the registration form, the paid registration handed to the ledger, and
the HTTP request/response bodies. Field names are snake_case in Python and
camelCase on the wire, matching the front-end.
"""
import re
from datetime import date, datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

PHONE_PATTERN = re.compile(r"^\+?\d{10,15}$")
# Control characters an xlsx cell cannot hold (tab, newline and CR are fine).
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def normalize_phone(value) -> str:
    value = re.sub(r"[\s\-()]", "", "" if value is None else str(value))
    if not PHONE_PATTERN.match(value):
        raise ValueError("Phone must be 10 to 15 digits")
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    @field_validator("*")
    @classmethod
    def reject_control_chars(cls, value):
        if isinstance(value, str) and CONTROL_CHARS.search(value):
            raise ValueError("Must not contain control characters")
        return value


class EventCategory(str, Enum):
    TECHNICAL = "technical"
    NON_TECHNICAL = "non-technical"


class PaymentChannel(str, Enum):
    UPI = "upi"
    QR = "qr"


class EventDescriptor(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique event key")
    name: str = Field(..., description="Public event name")
    category: EventCategory
    description: str = ""
    price: int = Field(..., ge=0, description="Flat registration fee in whole rupees")
    max_participants: Optional[int] = Field(None, ge=1)
    requires_team: bool = False
    team_size: Optional[int] = Field(None, ge=1, description="Team member entries expected per registration")
    requires_game_ids: bool = False
    deadline: date
    registration_prefix: Optional[str] = Field(None, description="Overrides the festival-wide registration id prefix")

    @model_validator(mode="after")
    def check_team_size(self):
        if self.requires_team and not self.team_size:
            raise ValueError(f"Event {self.id} requires a team but has no team size")
        return self


class TeamMember(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str

    @field_validator("phone", mode="before")
    @classmethod
    def check_phone(cls, value):
        return normalize_phone(value)


class GameId(CamelModel):
    player_name: str = Field(..., min_length=1)
    game_id: str = Field(..., min_length=1)
    character_name: Optional[str] = None


class RegistrationFields(CamelModel):
    event_id: str = Field(..., min_length=1)
    participant_name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str
    college: Optional[str] = None
    team_members: Optional[List[TeamMember]] = None
    game_ids: Optional[List[GameId]] = None

    @field_validator("phone", mode="before")
    @classmethod
    def check_phone(cls, value):
        return normalize_phone(value)

    @field_validator("college")
    @classmethod
    def blank_college_is_none(cls, value):
        return value or None


class PendingRegistration(RegistrationFields):
    """A validated registration awaiting payment. Never persisted."""

    total_amount: int = Field(..., ge=0)


class NewRegistration(PendingRegistration):
    """A paid registration on its way into the ledger, before an id is assigned."""

    event_name: str
    payment_id: str = Field(..., min_length=1)
    payment_status: Literal["completed"] = "completed"


class ConfirmedRegistration(NewRegistration):
    registration_id: str
    registration_date: datetime


# Request/response bodies

class OrderRequest(CamelModel):
    amount: int = Field(..., ge=0, description="Amount in whole rupees")
    receipt: str = Field(..., min_length=1)


class OrderDescriptor(CamelModel):
    order_id: str
    amount: int = Field(..., description="Amount in minor units (paise)")
    currency: str
    receipt: Optional[str] = None
    status: str = "created"


class VerifyPaymentRequest(CamelModel):
    payment_id: str = Field(..., min_length=1)
    order_id: str = Field(..., min_length=1)
    signature: str = ""


class RegistrationSubmission(RegistrationFields):
    """Body of POST /registrations: the paid registration minus its id."""

    total_amount: Optional[int] = None
    event_name: Optional[str] = None
    payment_id: str = Field(..., min_length=1)
    order_id: Optional[str] = None
    signature: Optional[str] = None
    payment_method: Optional[PaymentChannel] = None
