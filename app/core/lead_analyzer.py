# app/core/lead_analyzer.py
"""
Lead analysis for call transcripts.

`analyze_lead(call_sid, transcript, llm)`:
 - asks the LLM to extract lead fields (name, phone, product, need, appointment flag)
 - cleans the answer deterministically (name trim, Indian mobile validation)
 - recomputes the confidence score from which fields survived
 - stores the result on the call and auto-creates an appointment when asked for

The post-processing helpers are pure and used directly by tests.
"""
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from app.models.schemas import LeadJudgement
from app.storage import appointments_store, calls_store
from app.utils.dates import now_iso

logger = logging.getLogger("call-center.core.lead_analyzer")

EXTRACTION_METHOD = "gpt4o-mini-api"
DEFAULT_REASON = "Product Consultation"
APPOINTMENT_HOUR = 10
HIGH_PRIORITY_THRESHOLD = 0.8

_NON_DIGITS = re.compile(r"\D")


def clean_phone_number(raw: Optional[str]) -> str:
    """Keep a 10-digit number starting with 6-9, else return an empty string."""
    if not raw:
        return ""
    digits = _NON_DIGITS.sub("", str(raw))[:10]
    if len(digits) != 10 or digits[0] not in "6789":
        return ""
    return digits


def compute_confidence(has_name: bool, has_phone: bool, has_product: bool) -> float:
    score = 0.3
    if has_name:
        score += 0.4
    if has_phone:
        score += 0.4
    if has_product:
        score += 0.2
    return min(1.0, score)


def post_process(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize a raw model answer into the stored lead judgement."""
    result = LeadJudgement.model_validate(raw).model_dump()
    if result["customer_name"]:
        result["customer_name"] = result["customer_name"].strip()
    if result["phone_number"]:
        result["phone_number"] = clean_phone_number(result["phone_number"])
    result["confidence_score"] = compute_confidence(
        bool(result["customer_name"]), bool(result["phone_number"]), bool(result["product_interest"])
    )
    result["extraction_method"] = EXTRACTION_METHOD
    return result


def next_appointment_slot(now: Optional[datetime] = None) -> datetime:
    """
    Tomorrow at 10:00 local time, moved to Monday when tomorrow falls on a weekend.
    """
    now = now or datetime.now()
    slot = now + timedelta(days=1)
    if slot.weekday() == 6:  # Sunday
        slot += timedelta(days=1)
    elif slot.weekday() == 5:  # Saturday
        slot += timedelta(days=2)
    return slot.replace(hour=APPOINTMENT_HOUR, minute=0, second=0, microsecond=0)


async def create_appointment_from_call(
    call_sid: str, lead: Dict[str, Any], now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Return the call's appointment, creating a pending one from the lead if none exists."""
    existing = await appointments_store.find_by_call_sid(call_sid)
    if existing:
        logger.info("Appointment already exists for call %s", call_sid)
        return existing

    slot = next_appointment_slot(now)
    fields = {
        "client_name": lead.get("customer_name"),
        "phone": lead.get("phone_number"),
        "reason": lead.get("product_interest") or DEFAULT_REASON,
        "status": "Pending",
        "date": slot,
        "time": slot,
        "insurance": "Not Specified",
        "duration_seconds": 0,
        "priority": appointments_store.HIGH_PRIORITY if lead.get("confidence_score", 0) > HIGH_PRIORITY_THRESHOLD else None,
        "call_sid": call_sid,
        "notes": f"Auto-created from call analysis. Customer need: {lead.get('customer_need') or 'Not specified'}",
    }
    try:
        appointment = await appointments_store.create_appointment(fields)
    except Exception:
        # call_sid is unique: a concurrent analysis may have inserted first
        winner = await appointments_store.find_by_call_sid(call_sid)
        if winner:
            logger.info("Appointment for call %s created concurrently; reusing %s", call_sid, winner["id"])
            return winner
        raise

    logger.info("Auto-created appointment %s for %s", appointment["id"], appointment["client_name"])
    return appointment


async def analyze_lead(call_sid: str, transcript: str, llm) -> Dict[str, Any]:
    """
    Run lead extraction for one call and persist the outcome.

    `llm` is anything with an async `extract_lead(transcript) -> dict`.
    Errors propagate; the call's `lead_analysis_at` is only written on success.
    """
    logger.info("Analyzing call %s for lead information...", call_sid)
    raw = await llm.extract_lead(transcript)
    logger.debug("Raw AI result for %s: %s", call_sid, raw)

    result = post_process(raw)
    logger.info(
        "Processed result for %s: is_lead=%s name=%s phone=%s confidence=%.2f",
        call_sid,
        result["is_lead"],
        result["customer_name"],
        result["phone_number"],
        result["confidence_score"],
    )

    analyzed_at = now_iso()
    fields: Dict[str, Any] = {
        "is_lead": result["is_lead"],
        "is_appointment": result["is_appointment"],
        "lead_analysis_at": analyzed_at,
        "confidence_score": result["confidence_score"],
        "extraction_method": EXTRACTION_METHOD,
    }
    if result["is_lead"]:
        fields["lead_details"] = {
            "customer_name": result["customer_name"] or "",
            "phone_number": result["phone_number"] or "",
            "product_interest": result["product_interest"] or "",
            "customer_need": result["customer_need"] or "",
            "confidence_score": result["confidence_score"],
            "extraction_method": EXTRACTION_METHOD,
            "analysis_timestamp": analyzed_at,
        }
    await calls_store.save_lead_analysis(call_sid, fields)

    if result["is_appointment"] and result["customer_name"] and result["phone_number"]:
        await create_appointment_from_call(call_sid, result)

    logger.info("Analysis complete for %s", call_sid)
    return result
