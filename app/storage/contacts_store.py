# app/storage/contacts_store.py
"""Contact-form submissions. Write-only: nothing in the service reads them back."""
import logging
from typing import Any, Dict, Optional

from app.db.db import get_database
from app.models.db_models import contacts
from app.utils.dates import now_iso

logger = logging.getLogger("call-center.storage.contacts")


async def save_contact(name: str, email: str, phone_number: str, message: Optional[str] = None) -> Dict[str, Any]:
    db = get_database()
    values = {
        "name": name.strip(),
        "email": email.strip().lower(),
        "phone_number": phone_number,
        "message": message or None,
        "submitted_at": now_iso(),
    }
    contact_id = await db.execute(contacts.insert().values(**values))
    values["id"] = contact_id
    logger.debug("Saved contact row: %s", values)
    return values
