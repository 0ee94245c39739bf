"""Session note domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import require_text


class SessionNoteCreate(BaseModel):
    appointment_id: str
    title: str
    content: str

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return require_text(v, "Title")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        return require_text(v, "Content")


class SessionNoteUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return require_text(v, "Title") if v is not None else v

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        return require_text(v, "Content") if v is not None else v


class SessionNoteView(BaseModel):
    """Session note with the client's name and the appointment date"""

    id: str
    appointment_id: Optional[str] = None
    client_id: str
    therapist_id: str
    title: str
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    client_name: str
    appointment_date: str


class ClientSessionNoteView(BaseModel):
    id: str
    appointment_id: Optional[str] = None
    title: str
    content: str
    created_at: datetime
    therapist_name: str
    appointment_date: str


class CompletedAppointment(BaseModel):
    """Completed appointment annotated with whether a note was written"""

    id: str
    client_id: str
    start_time: datetime
    end_time: datetime
    client_name: str
    has_note: bool
