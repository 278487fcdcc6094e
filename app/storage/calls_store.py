# app/storage/calls_store.py
"""
Call record storage backed by databases/SQLAlchemy (async).

Exposes:
 - get_call(sid)
 - upsert_call(call: dict)                 provider fields, last write wins
 - record_status_callback(sid, status, recording_url)
 - set_transcription(sid, text)
 - save_lead_analysis(sid, fields: dict)
 - query_calls(...)                         filtered + paginated listing
 - list_calls_pending_analysis()
 - claim_unprocessed_transcriptions()       atomic read-and-mark for broadcasts
"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import sqlalchemy as sa

from app.db.db import contains_ci, get_database
from app.models.db_models import calls
from app.utils.dates import now_iso

logger = logging.getLogger("call-center.storage.calls")

# Fields owned by the provider; the sync loop overwrites only these
PROVIDER_FIELDS = ("from_number", "to_number", "status", "start_time", "end_time", "duration", "direction")


def _loads(raw: Optional[str], default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        return default


def row_to_call(row) -> Dict[str, Any]:
    d = dict(row)
    return {
        "sid": d.get("sid"),
        "from_number": d.get("from_number"),
        "to_number": d.get("to_number"),
        "status": d.get("status"),
        "start_time": d.get("start_time"),
        "end_time": d.get("end_time"),
        "duration": d.get("duration"),
        "direction": d.get("direction"),
        "recordings": _loads(d.get("recordings_json"), []),
        "transcription": d.get("transcription"),
        "is_lead": bool(d.get("is_lead")),
        "lead_details": _loads(d.get("lead_details_json"), None),
        "is_appointment": bool(d.get("is_appointment")),
        "appointment_details": _loads(d.get("appointment_details_json"), None),
        "is_processed": bool(d.get("is_processed")),
        "lead_analysis_at": d.get("lead_analysis_at"),
        "confidence_score": d.get("confidence_score"),
        "extraction_method": d.get("extraction_method"),
    }


def _new_row(sid: str) -> Dict[str, Any]:
    return {
        "sid": sid,
        "recordings_json": "[]",
        "is_lead": False,
        "is_appointment": False,
        "is_processed": False,
    }


async def get_call(sid: str) -> Optional[Dict[str, Any]]:
    db = get_database()
    row = await db.fetch_one(calls.select().where(calls.c.sid == sid))
    return row_to_call(row) if row else None


async def upsert_call(call: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insert or update a call keyed by its SID. Only provider fields and the
    recordings list are written; transcription / lead / processed state is kept.
    """
    sid = call.get("sid")
    if not sid:
        raise ValueError("call must contain sid")

    db = get_database()
    values = {k: call.get(k) for k in PROVIDER_FIELDS}
    values["recordings_json"] = json.dumps(call.get("recordings") or [])

    async with db.transaction():
        existing = await db.fetch_one(calls.select().where(calls.c.sid == sid))
        if existing:
            await db.execute(calls.update().where(calls.c.sid == sid).values(**values))
        else:
            row = _new_row(sid)
            row.update(values)
            await db.execute(calls.insert().values(**row))
        stored = await db.fetch_one(calls.select().where(calls.c.sid == sid))
    return row_to_call(stored)


async def record_status_callback(sid: str, status: Optional[str], recording_url: Optional[str]) -> Dict[str, Any]:
    """Set the status and append a recording entry, creating the call if unknown."""
    db = get_database()
    recording = {"sid": sid, "recording_url": recording_url or None, "created_at": now_iso()}

    async with db.transaction():
        existing = await db.fetch_one(calls.select().where(calls.c.sid == sid))
        if existing:
            recordings = _loads(dict(existing).get("recordings_json"), [])
            recordings.append(recording)
            await db.execute(
                calls.update().where(calls.c.sid == sid).values(status=status, recordings_json=json.dumps(recordings))
            )
        else:
            row = _new_row(sid)
            row.update({"status": status, "recordings_json": json.dumps([recording])})
            await db.execute(calls.insert().values(**row))
        stored = await db.fetch_one(calls.select().where(calls.c.sid == sid))
    return row_to_call(stored)


async def set_transcription(sid: str, text: str) -> None:
    db = get_database()
    async with db.transaction():
        existing = await db.fetch_one(calls.select().where(calls.c.sid == sid))
        if existing:
            await db.execute(calls.update().where(calls.c.sid == sid).values(transcription=text))
        else:
            row = _new_row(sid)
            row["transcription"] = text
            await db.execute(calls.insert().values(**row))


async def save_lead_analysis(sid: str, fields: Dict[str, Any]) -> bool:
    """
    Write lead-analysis results onto an existing call. Unknown SIDs are left alone.
    `lead_details` (dict) is stored only when present in `fields`.
    """
    db = get_database()
    values = dict(fields)
    if "lead_details" in values:
        values["lead_details_json"] = json.dumps(values.pop("lead_details"))

    existing = await db.fetch_one(calls.select().where(calls.c.sid == sid))
    if not existing:
        logger.warning("Lead analysis for unknown call %s not stored", sid)
        return False
    await db.execute(calls.update().where(calls.c.sid == sid).values(**values))
    return True


def _filters(
    search_id: Optional[str] = None,
    status: Optional[str] = None,
    direction: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[Any]:
    clauses = []
    if search_id:
        clauses.append(contains_ci(calls.c.sid, search_id))
    if status:
        clauses.append(calls.c.status == status)
    if direction:
        clauses.append(calls.c.direction == direction)
    if start_date:
        clauses.append(calls.c.start_time >= start_date)
    if end_date:
        clauses.append(calls.c.start_time <= end_date)
    return clauses


async def query_calls(
    search_id: Optional[str] = None,
    status: Optional[str] = None,
    direction: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Dict[str, Any]], int]:
    """Newest-first page of calls plus the total number of matches."""
    db = get_database()
    clauses = _filters(search_id, status, direction, start_date, end_date)

    q = calls.select()
    count_q = sa.select(sa.func.count()).select_from(calls)
    for clause in clauses:
        q = q.where(clause)
        count_q = count_q.where(clause)

    q = q.order_by(calls.c.start_time.desc()).offset((page - 1) * limit).limit(limit)
    rows = await db.fetch_all(q)
    total = await db.fetch_val(count_q)
    return [row_to_call(r) for r in rows], int(total or 0)


async def list_calls_pending_analysis() -> List[Dict[str, Any]]:
    """Calls whose first recording has a URL and that were never lead-analyzed."""
    db = get_database()
    q = calls.select().where(calls.c.lead_analysis_at.is_(None)).where(calls.c.recordings_json != "[]")
    rows = await db.fetch_all(q)
    pending = []
    for r in rows:
        call = row_to_call(r)
        recordings = call["recordings"]
        if recordings and recordings[0].get("recording_url"):
            pending.append(call)
    return pending


async def claim_unprocessed_transcriptions() -> List[Dict[str, Any]]:
    """
    Return every transcribed call not yet broadcast and mark them processed,
    both inside one transaction.
    """
    db = get_database()
    async with db.transaction():
        q = (
            calls.select()
            .where(calls.c.transcription.is_not(None))
            .where(calls.c.transcription != "")
            .where(calls.c.is_processed == sa.false())
        )
        rows = await db.fetch_all(q)
        if not rows:
            return []
        sids = [dict(r)["sid"] for r in rows]
        await db.execute(calls.update().where(calls.c.sid.in_(sids)).values(is_processed=True))

    # rows reflect the state read before the mark (is_processed == False)
    return [row_to_call(r) for r in rows]
