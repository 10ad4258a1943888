"""Gatepass-related Pydantic schemas."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from gatepass.database_types import to_naive_utc
from gatepass.models.gatepass_request import GatepassStatus


class GatepassRequestCreate(BaseModel):
    """Student submission. Accepts the legacy `purpose`/`departure_datetime` names."""
    model_config = ConfigDict(str_strip_whitespace=True)

    student_name: str = Field(min_length=1)
    roll_number: str = Field(min_length=1)
    student_email: Optional[EmailStr] = None
    parent_email: EmailStr
    reason: str = Field(min_length=1, validation_alias=AliasChoices("reason", "purpose"))
    destination: Optional[str] = None
    departure_date_time: datetime = Field(
        validation_alias=AliasChoices("departure_date_time", "departure_datetime")
    )
    return_date_time: Optional[datetime] = None
    duration: Optional[str] = None

    @field_validator("student_email", "destination", "return_date_time", "duration", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        # HTML forms send empty strings for untouched optional inputs
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("departure_date_time", "return_date_time")
    @classmethod
    def _normalize_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return value
        return to_naive_utc(value)

    @model_validator(mode="after")
    def _return_after_departure(self):
        if self.return_date_time is not None and self.return_date_time < self.departure_date_time:
            raise ValueError("return_date_time must not be before departure_date_time")
        return self


class GatepassResponse(BaseModel):
    """Schema for a stored gatepass request."""
    id: UUID
    student_name: str
    roll_number: str
    student_email: Optional[str] = None
    parent_email: str
    reason: str
    destination: Optional[str] = None
    departure_date_time: datetime
    return_date_time: Optional[datetime] = None
    duration: Optional[str] = None
    status: GatepassStatus
    parent_approved_at: Optional[datetime] = None
    parent_rejection_reason: Optional[str] = None
    warden_approved_at: Optional[datetime] = None
    warden_notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GatepassCreateResponse(GatepassResponse):
    """Response after a submission, including the parent approval link."""
    approval_link: str


class ParentDecisionAction(BaseModel):
    """Schema for the parent's approve/reject action."""
    approved: bool
    rejection_reason: Optional[str] = None


class WardenDecisionAction(BaseModel):
    """Schema for the warden's final decision."""
    approved: bool
    notes: Optional[str] = None
