# app/models/schemas.py
"""
Pydantic schemas for API inputs/outputs.

Required fields are declared Optional on purpose: handlers check them and answer
with a 400 that names the missing fields.
"""
from datetime import datetime
from typing import Any, Optional, List, Literal
from pydantic import BaseModel, Field, field_validator

AppointmentStatus = Literal["Confirmed", "Pending", "Rescheduled", "Cancelled"]
AppointmentPriority = Literal["High Priority"]
UserRole = Literal["user", "admin"]


class RegisterIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    assignedPhoneNumber: Optional[str] = None
    role: Optional[UserRole] = None


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AnalyzeLeadIn(BaseModel):
    callSid: Optional[str] = None
    transcription: Optional[str] = None


class LeadJudgement(BaseModel):
    """
    Structured answer of the lead-extraction model.

    Model output is loosely typed: nulls fall back to the defaults, flags use
    truthiness and text fields accept numbers or lists.
    """

    is_lead: bool = False
    customer_name: str = ""
    phone_number: str = ""
    product_interest: str = ""
    customer_need: str = ""
    is_appointment: bool = False
    confidence_score: float = 0.5
    extraction_method: Optional[str] = None

    @field_validator("is_lead", "is_appointment", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().lower() not in ("", "false", "no", "0")
        return bool(v)

    @field_validator("customer_name", "phone_number", "product_interest", "customer_need", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, (list, tuple)):
            return ", ".join(str(item) for item in v if item is not None)
        return str(v)

    @field_validator("confidence_score", mode="before")
    @classmethod
    def coerce_score(cls, v: Any) -> float:
        try:
            return float(v)
        except (TypeError, ValueError):
            return 0.5

    @field_validator("extraction_method", mode="before")
    @classmethod
    def coerce_method(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)


class AppointmentIn(BaseModel):
    client_name: Optional[str] = None
    phone: Optional[str] = None
    reason: Optional[str] = None
    date: Optional[datetime] = None
    time: Optional[datetime] = None
    insurance: Optional[str] = None
    priority: Optional[AppointmentPriority] = None
    notes: Optional[str] = None


class AppointmentUpdate(BaseModel):
    client_name: Optional[str] = None
    phone: Optional[str] = None
    reason: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    date: Optional[datetime] = None
    time: Optional[datetime] = None
    insurance: Optional[str] = None
    duration_seconds: Optional[int] = Field(None, ge=0)
    priority: Optional[AppointmentPriority] = None
    call_sid: Optional[str] = None
    notes: Optional[str] = None


class BulkStatusIn(BaseModel):
    appointment_ids: Optional[List[str]] = None
    status: Optional[AppointmentStatus] = None


class OutboundCallIn(BaseModel):
    toNumber: Optional[str] = None


class SummarizeIn(BaseModel):
    text: Optional[str] = None


class ContactIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phoneNumber: Optional[str] = None
    message: Optional[str] = None


class StatusCallback(BaseModel):
    CallSid: Optional[str] = None
    RecordingUrl: Optional[str] = None
    Status: Optional[str] = None
