# app/core/orchestrator.py
"""
Orchestrator: call-record workflows that span the provider clients and the store.

 - fetch_and_save_calls(exotel): one sync cycle (list -> details -> upsert)
 - transcribe_call(call_sid, exotel, asr): cached transcription or download + ASR
 - analyze_all_calls(exotel, asr, llm): batch transcription + lead analysis

Each function receives its clients explicitly so the scheduled jobs and the API
share one implementation.
"""
import asyncio
import logging
import os
import tempfile
from typing import Any, Dict, List

from app.core.lead_analyzer import analyze_lead
from app.storage import calls_store

logger = logging.getLogger("call-center.core.orchestrator")

SYNC_PAGE_SIZE = 50


class RecordingNotFound(LookupError):
    """The provider has no recording for the requested call."""


async def fetch_and_save_calls(exotel) -> int:
    """
    Pull the latest page of calls from Exotel and upsert each by SID.
    A failed detail fetch skips that call; a failed list fetch yields an empty cycle.
    Returns the number of calls stored.
    """
    raw_calls = await exotel.list_calls(page_size=SYNC_PAGE_SIZE)
    details: List[Any] = await asyncio.gather(*(exotel.fetch_call_details(c.get("Sid")) for c in raw_calls))

    saved = 0
    for call in details:
        if not call or not call.get("sid"):
            continue
        await calls_store.upsert_call(call)
        saved += 1

    logger.info("Fetched %d calls from Exotel, saved %d", len(details), saved)
    return saved


async def recording_url_for(exotel, call_sid: str) -> str:
    """Resolve the first recording URL of a call via the provider. Raises RecordingNotFound."""
    call = await exotel.fetch_call_details(call_sid)
    if not call or not call.get("recordings"):
        raise RecordingNotFound(call_sid)
    url = call["recordings"][0].get("recording_url")
    if not url:
        raise RecordingNotFound(call_sid)
    return url


async def transcribe_call(call_sid: str, exotel, asr) -> str:
    """
    Return the stored transcription, or download the recording to a temp file,
    transcribe it and store the text. The temp file is removed on every path.
    """
    existing = await calls_store.get_call(call_sid)
    if existing and existing.get("transcription"):
        logger.info("Transcription found in DB for %s. Returning cached text.", call_sid)
        return existing["transcription"]

    url = await recording_url_for(exotel, call_sid)
    temp_path = os.path.join(tempfile.gettempdir(), f"{call_sid}.mp3")
    try:
        size = await exotel.download_recording(url, temp_path)
        if size == 0:
            raise ValueError("Downloaded file is empty.")
        text = await asr.transcribe(temp_path)
        await calls_store.set_transcription(call_sid, text)
        logger.info("Stored transcription for %s (%d chars)", call_sid, len(text))
        return text
    finally:
        try:
            os.remove(temp_path)
        except OSError:
            pass


async def analyze_all_calls(exotel, asr, llm) -> Dict[str, int]:
    """
    Transcribe and lead-analyze every call with a recording that was never analyzed.
    Per-call failures are logged and skipped.
    """
    pending = await calls_store.list_calls_pending_analysis()
    logger.info("Found %d calls to analyze.", len(pending))

    analyzed = 0
    for call in pending:
        sid = call["sid"]
        try:
            transcript = await transcribe_call(sid, exotel, asr)
            if transcript:
                await analyze_lead(sid, transcript, llm)
                analyzed += 1
        except Exception as exc:
            logger.error("Error analyzing call %s: %s", sid, exc)

    logger.info("Batch analysis complete.")
    return {"found": len(pending), "analyzed": analyzed}
