# app/api/calls.py
import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask

from app.api.auth import get_current_user
from app.api.deps import get_asr_client, get_exotel_client, get_llm_client
from app.core import orchestrator
from app.core.orchestrator import RecordingNotFound
from app.models.schemas import OutboundCallIn, StatusCallback, SummarizeIn
from app.storage import calls_store
from app.utils.dates import iso_or_none

logger = logging.getLogger("call-center.api.calls")

# Exotel posts status callbacks without credentials
public_router = APIRouter()
router = APIRouter(dependencies=[Depends(get_current_user)])


@public_router.post("/status-callback", summary="Exotel call status callback")
async def status_callback(request: Request):
    try:
        if request.headers.get("content-type", "").startswith("application/json"):
            payload = StatusCallback.model_validate(await request.json())
        else:
            payload = StatusCallback.model_validate(dict(await request.form()))
        if not payload.CallSid:
            raise ValueError("CallSid missing")
        await calls_store.record_status_callback(payload.CallSid, payload.Status, payload.RecordingUrl)
    except Exception as exc:
        logger.error("Error handling status callback: %s", exc)
        return PlainTextResponse("Error", status_code=500)

    logger.info("Status callback received for CallSid %s", payload.CallSid)
    return PlainTextResponse("OK")


@router.get("/fetch-calls", summary="Run one Exotel sync cycle")
async def fetch_calls(exotel=Depends(get_exotel_client)):
    await orchestrator.fetch_and_save_calls(exotel)
    return {"message": "Calls fetched and saved successfully"}


@router.get("/analyze-all-calls", summary="Transcribe and analyze every unanalyzed call")
async def analyze_all_calls(
    exotel=Depends(get_exotel_client),
    asr=Depends(get_asr_client),
    llm=Depends(get_llm_client),
):
    logger.info("Starting batch analysis of calls for appointments...")
    try:
        summary = await orchestrator.analyze_all_calls(exotel, asr, llm)
    except Exception as exc:
        logger.error("Error in batch analysis: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to perform batch analysis.")
    return {"message": f"Successfully analyzed {summary['found']} calls."}


@router.get("/calls", summary="List stored calls")
async def list_calls(
    searchId: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    direction: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
):
    try:
        items, total = await calls_store.query_calls(
            search_id=searchId,
            status=status,
            direction=direction,
            start_date=iso_or_none(startDate),
            end_date=iso_or_none(endDate),
            page=page,
            limit=limit,
        )
    except Exception as exc:
        logger.error("Error fetching calls from DB: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to fetch calls from DB")

    return {"calls": items, "total": total, "page": page, "totalPages": math.ceil(total / limit)}


@router.post("/outbound-call", summary="Place an outbound call through Exotel")
async def outbound_call(payload: OutboundCallIn, exotel=Depends(get_exotel_client)):
    if not payload.toNumber:
        raise HTTPException(status_code=400, detail="toNumber is required")
    try:
        data = await exotel.place_outbound_call(payload.toNumber)
        new_sid = (data.get("Call") or {}).get("Sid")
        if new_sid:
            details = await exotel.fetch_call_details(new_sid)
            if details:
                await calls_store.upsert_call(details)
    except Exception as exc:
        logger.error("Error making outbound call: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to initiate call")

    return {"message": "Call initiated successfully!", "data": data}


@router.get("/recording/{call_sid}", summary="Stream a call recording")
async def recording(call_sid: str, exotel=Depends(get_exotel_client)):
    try:
        url = await orchestrator.recording_url_for(exotel, call_sid)
        upstream = await exotel.open_recording(url)
    except RecordingNotFound:
        raise HTTPException(status_code=404, detail="Recording not found")
    except Exception as exc:
        logger.error("Error streaming recording: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to fetch recording")

    return StreamingResponse(
        upstream.aiter_bytes(),
        media_type=upstream.headers.get("content-type"),
        background=BackgroundTask(upstream.aclose),
    )


@router.post("/transcribe/{call_sid}", summary="Transcribe a call recording")
async def transcribe(call_sid: str, exotel=Depends(get_exotel_client), asr=Depends(get_asr_client)):
    try:
        text = await orchestrator.transcribe_call(call_sid, exotel, asr)
    except RecordingNotFound:
        raise HTTPException(status_code=404, detail="Recording not found for transcription")
    except Exception as exc:
        logger.error("Error transcribing recording: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to transcribe recording")
    return {"text": text}


@router.post("/summarize", summary="Summarize a transcription")
async def summarize(payload: SummarizeIn, llm=Depends(get_llm_client)):
    if not payload.text:
        raise HTTPException(status_code=400, detail="text is required")
    try:
        summary = await llm.summarize(payload.text)
    except Exception as exc:
        logger.error("Error generating summary: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to generate summary")
    return {"summary": summary}
