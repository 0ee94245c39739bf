"""
Contact form endpoint (public)
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..config import CONTACT_RATE_LIMIT, CONTACT_RATE_WINDOW
from ..database import get_db
from ..models import ContactMessage
from ..rate_limiter import create_rate_limiter
from ..security_utils import mask_email, sanitize_text
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Contact"])

contact_rate_limit = create_rate_limiter(CONTACT_RATE_LIMIT, CONTACT_RATE_WINDOW, "contact")


class ContactRequest(BaseModel):
    # Loosely typed so malformed bodies get the form's own 400 error
    name: Any = None
    email: Any = None
    subject: Any = None
    message: Any = None
    user_id: Any = Field(None, alias="userId")

    class Config:
        populate_by_name = True


def insert_contact_message(db: Session, **data) -> ContactMessage:
    """Store a contact message in a single transaction"""
    try:
        record = ContactMessage(**data)
        db.add(record)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return record


@router.post("/contact")
async def submit_contact_form(
    data: ContactRequest,
    db: Session = Depends(get_db),
    _: None = Depends(contact_rate_limit),
):
    """Accept a contact form submission; all four text fields are required"""
    for name in ("name", "email", "subject", "message"):
        value = getattr(data, name)
        if value is not None and not isinstance(value, str):
            return JSONResponse(status_code=400, content={"error": f"Invalid {name}: expected text"})
    if data.user_id is not None and not isinstance(data.user_id, str):
        return JSONResponse(status_code=400, content={"error": "Invalid userId: expected text"})

    fields = {
        "name": sanitize_text(data.name),
        "email": (data.email or "").strip(),
        "subject": sanitize_text(data.subject),
        "message": sanitize_text(data.message),
    }
    if not all(fields.values()):
        return JSONResponse(status_code=400, content={"error": "Missing required fields"})

    try:
        fields["email"] = validate_email(fields["email"])
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    try:
        insert_contact_message(db, user_id=data.user_id or None, **fields)
    except Exception as e:
        logger.error(f"❌ Error processing contact form from {mask_email(fields['email'])}: {e}")
        return JSONResponse(
            status_code=500, content={"error": str(e) or "An unknown error occurred"}
        )

    logger.info(f"✉️ Contact message received from {mask_email(fields['email'])}")
    return {"success": True, "message": "Message sent successfully"}
