# app/api/leads.py
import logging

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_llm_client
from app.core.lead_analyzer import analyze_lead
from app.models.schemas import AnalyzeLeadIn

logger = logging.getLogger("call-center.api.leads")
router = APIRouter()


@router.post("/analyze-lead", summary="Extract lead information from a transcript")
async def analyze_lead_endpoint(payload: AnalyzeLeadIn, llm=Depends(get_llm_client)):
    """
    Called after a transcription completes. Updates the call's lead fields and
    auto-creates an appointment when the caller asked for one.
    """
    logger.info("Received analyze-lead request for call: %s", payload.callSid)
    if not payload.callSid or not payload.transcription:
        raise HTTPException(status_code=400, detail="callSid and transcription are required")

    try:
        return await analyze_lead(payload.callSid, payload.transcription, llm)
    except Exception:
        logger.exception("Error analyzing call %s", payload.callSid)
        raise HTTPException(status_code=500, detail="Failed to analyze call for lead information")
