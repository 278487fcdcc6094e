# app/storage/appointments_store.py
"""
Appointment storage backed by the database.

Appointment ids are generated here (``APT_<epoch ms>_<6 base36 chars>``), not by the store.
"""
import logging
import random
import string
import time
from datetime import date as date_cls, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import sqlalchemy as sa

from app.db.db import contains_ci, get_database
from app.models.db_models import appointments
from app.utils.dates import now_iso, to_iso

logger = logging.getLogger("call-center.storage.appointments")

STATUSES = ("Confirmed", "Pending", "Rescheduled", "Cancelled")
HIGH_PRIORITY = "High Priority"
SORTABLE = {"date", "time", "client_name", "status", "created_at", "updated_at", "priority", "phone"}

_BASE36 = string.digits + string.ascii_lowercase


def generate_appointment_id() -> str:
    suffix = "".join(random.choices(_BASE36, k=6))
    return f"APT_{int(time.time() * 1000)}_{suffix}"


def row_to_appointment(row) -> Dict[str, Any]:
    d = dict(row)
    d["duration_seconds"] = int(d.get("duration_seconds") or 0)
    return d


def _as_iso(value: Any) -> Any:
    return to_iso(value) if isinstance(value, datetime) else value


async def create_appointment(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Insert an appointment, filling defaults. `date` / `time` may be datetimes or ISO strings."""
    db = get_database()
    now = now_iso()
    row = {
        "id": fields.get("id") or generate_appointment_id(),
        "client_name": fields["client_name"],
        "phone": fields["phone"],
        "reason": fields["reason"],
        "status": fields.get("status") or "Pending",
        "date": _as_iso(fields["date"]),
        "time": _as_iso(fields["time"]),
        "insurance": fields.get("insurance") or "Not Specified",
        "duration_seconds": fields.get("duration_seconds") or 0,
        "priority": fields.get("priority") or None,
        "created_at": now,
        "updated_at": now,
        "call_sid": fields.get("call_sid"),
        "notes": fields.get("notes") or "",
    }
    await db.execute(appointments.insert().values(**row))
    return await get_appointment(row["id"])


async def get_appointment(appointment_id: str) -> Optional[Dict[str, Any]]:
    db = get_database()
    row = await db.fetch_one(appointments.select().where(appointments.c.id == appointment_id))
    return row_to_appointment(row) if row else None


async def find_by_call_sid(call_sid: str) -> Optional[Dict[str, Any]]:
    db = get_database()
    row = await db.fetch_one(appointments.select().where(appointments.c.call_sid == call_sid))
    return row_to_appointment(row) if row else None


async def update_appointment(appointment_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    db = get_database()
    if not await get_appointment(appointment_id):
        return None
    values = {k: _as_iso(v) for k, v in patch.items() if k in appointments.c and k not in ("id", "created_at")}
    values["updated_at"] = now_iso()
    await db.execute(appointments.update().where(appointments.c.id == appointment_id).values(**values))
    return await get_appointment(appointment_id)


async def delete_appointment(appointment_id: str) -> bool:
    db = get_database()
    if not await get_appointment(appointment_id):
        return False
    await db.execute(appointments.delete().where(appointments.c.id == appointment_id))
    return True


def _day_window(day: date_cls) -> Tuple[str, str]:
    start = datetime(day.year, day.month, day.day)
    return to_iso(start), to_iso(start + timedelta(days=1))


def _filters(
    status: Optional[str] = None,
    day: Optional[date_cls] = None,
    client_name: Optional[str] = None,
    phone: Optional[str] = None,
) -> List[Any]:
    clauses = []
    if status and status != "All":
        clauses.append(appointments.c.status == status)
    if day:
        start, end = _day_window(day)
        clauses.append(appointments.c.date >= start)
        clauses.append(appointments.c.date < end)
    if client_name:
        clauses.append(contains_ci(appointments.c.client_name, client_name))
    if phone:
        clauses.append(contains_ci(appointments.c.phone, phone))
    return clauses


async def list_appointments(
    status: Optional[str] = None,
    day: Optional[date_cls] = None,
    client_name: Optional[str] = None,
    phone: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "date",
    sort_order: str = "desc",
) -> Tuple[List[Dict[str, Any]], int]:
    db = get_database()
    clauses = _filters(status, day, client_name, phone)

    column = appointments.c[sort_by] if sort_by in SORTABLE else appointments.c.date
    order = column.desc() if sort_order == "desc" else column.asc()

    q = appointments.select()
    count_q = sa.select(sa.func.count()).select_from(appointments)
    for clause in clauses:
        q = q.where(clause)
        count_q = count_q.where(clause)

    rows = await db.fetch_all(q.order_by(order).offset((page - 1) * limit).limit(limit))
    total = await db.fetch_val(count_q)
    return [row_to_appointment(r) for r in rows], int(total or 0)


async def count_by_status() -> Dict[str, int]:
    """Counts over all appointments, keyed by lower-cased status."""
    db = get_database()
    q = sa.select(appointments.c.status, sa.func.count().label("count")).group_by(appointments.c.status)
    rows = await db.fetch_all(q)
    counts: Dict[str, int] = {}
    for r in rows:
        d = dict(r)
        if d.get("status"):
            counts[d["status"].lower()] = int(d["count"])
    return counts


async def bulk_update_status(appointment_ids: List[str], status: str) -> int:
    """Set `status` on every listed appointment. Returns the number of rows touched."""
    db = get_database()
    if not appointment_ids:
        return 0
    where = appointments.c.id.in_(appointment_ids)
    async with db.transaction():
        matched = await db.fetch_val(sa.select(sa.func.count()).select_from(appointments).where(where))
        await db.execute(appointments.update().where(where).values(status=status, updated_at=now_iso()))
    return int(matched or 0)


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


async def summary_stats(today: Optional[date_cls] = None) -> Dict[str, Any]:
    db = get_database()
    today = today or date_cls.today()
    start, end = _day_window(today)

    total = int(await db.fetch_val(sa.select(sa.func.count()).select_from(appointments)) or 0)
    today_count = await db.fetch_val(
        sa.select(sa.func.count())
        .select_from(appointments)
        .where(appointments.c.date >= start)
        .where(appointments.c.date < end)
    )
    high_priority = await db.fetch_val(
        sa.select(sa.func.count()).select_from(appointments).where(appointments.c.priority == HIGH_PRIORITY)
    )
    by_status = await count_by_status()
    cancelled = by_status.get("cancelled", 0)

    return {
        "total": total,
        "today": int(today_count or 0),
        "high_priority": int(high_priority or 0),
        "confirmed": by_status.get("confirmed", 0),
        "pending": by_status.get("pending", 0),
        "rescheduled": by_status.get("rescheduled", 0),
        "cancelled": cancelled,
        "cancellation_rate": _round_half_up(cancelled / total * 100) if total else 0,
    }
