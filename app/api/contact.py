# app/api/contact.py
import logging

from fastapi import APIRouter, HTTPException

from app.models.schemas import ContactIn
from app.storage.contacts_store import save_contact

logger = logging.getLogger("call-center.api.contact")
router = APIRouter()


@router.post("/contact", status_code=201, summary="Submit the public contact form")
async def submit_contact(payload: ContactIn):
    if not payload.name or not payload.email or not payload.phoneNumber:
        raise HTTPException(status_code=400, detail="name, email, and phoneNumber are required")
    try:
        contact = await save_contact(payload.name, payload.email, payload.phoneNumber, payload.message)
    except Exception:
        logger.exception("Error saving contact")
        raise HTTPException(status_code=500, detail="Failed to submit contact form")

    logger.info("Contact form submitted by %s", contact["email"])
    return {"message": "Contact form submitted successfully", "contactId": contact["id"]}
