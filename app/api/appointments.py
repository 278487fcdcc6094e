# app/api/appointments.py
import logging
import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.auth import get_current_user
from app.models.schemas import AppointmentIn, AppointmentUpdate, BulkStatusIn
from app.storage import appointments_store
from app.utils.dates import parse_datetime

logger = logging.getLogger("call-center.api.appointments")
router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/appointments", summary="List appointments")
async def list_appointments(
    status: Optional[str] = Query(None),
    date: Optional[str] = Query(None, description="Day (ISO date) the appointment falls on"),
    client_name: Optional[str] = Query(None),
    phone: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    sort_by: str = Query("date"),
    sort_order: str = Query("desc"),
):
    day = None
    if date:
        parsed = parse_datetime(date)
        if parsed is None:
            raise HTTPException(status_code=400, detail="date must be an ISO date")
        day = parsed.date()

    try:
        items, total = await appointments_store.list_appointments(
            status=status,
            day=day,
            client_name=client_name,
            phone=phone,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        counts = await appointments_store.count_by_status()
    except Exception:
        logger.exception("Error fetching appointments")
        raise HTTPException(status_code=500, detail="Failed to fetch appointments")

    stats: Dict[str, Any] = {"total": total, "confirmed": 0, "pending": 0, "rescheduled": 0, "cancelled": 0}
    stats.update(counts)
    return {
        "appointments": items,
        "pagination": {
            "current_page": page,
            "total_pages": math.ceil(total / limit),
            "total_appointments": total,
            "per_page": limit,
        },
        "stats": stats,
    }


@router.post("/appointments", status_code=201, summary="Create an appointment")
async def create_appointment(payload: AppointmentIn):
    if not (payload.client_name and payload.phone and payload.reason and payload.date and payload.time):
        raise HTTPException(status_code=400, detail="Missing required fields: client_name, phone, reason, date, time")

    try:
        appointment = await appointments_store.create_appointment(payload.model_dump())
    except Exception:
        logger.exception("Error creating appointment")
        raise HTTPException(status_code=500, detail="Failed to create appointment")

    logger.info("Created new appointment: %s for %s", appointment["id"], appointment["client_name"])
    return appointment


@router.get("/appointments/stats/summary", summary="Appointment statistics")
async def appointment_stats():
    try:
        return await appointments_store.summary_stats()
    except Exception:
        logger.exception("Error fetching appointment statistics")
        raise HTTPException(status_code=500, detail="Failed to fetch statistics")


@router.patch("/appointments/bulk-status", summary="Set the status of many appointments")
async def bulk_status(payload: BulkStatusIn):
    if payload.appointment_ids is None or not payload.status:
        raise HTTPException(status_code=400, detail="appointment_ids (array) and status are required")

    try:
        modified = await appointments_store.bulk_update_status(payload.appointment_ids, payload.status)
    except Exception:
        logger.exception("Error bulk updating appointments")
        raise HTTPException(status_code=500, detail="Failed to update appointments")

    logger.info("Bulk updated %d appointments to status: %s", modified, payload.status)
    return {"message": f"Updated {modified} appointments", "modified_count": modified}


@router.get("/appointments/{appointment_id}", summary="Get appointment by id")
async def get_appointment(appointment_id: str):
    try:
        appointment = await appointments_store.get_appointment(appointment_id)
    except Exception:
        logger.exception("Error fetching appointment")
        raise HTTPException(status_code=500, detail="Failed to fetch appointment")
    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appointment


@router.put("/appointments/{appointment_id}", summary="Update an appointment")
async def update_appointment(appointment_id: str, payload: AppointmentUpdate):
    try:
        appointment = await appointments_store.update_appointment(appointment_id, payload.model_dump(exclude_unset=True))
    except Exception:
        logger.exception("Error updating appointment")
        raise HTTPException(status_code=500, detail="Failed to update appointment")
    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")

    logger.info("Updated appointment: %s", appointment_id)
    return appointment


@router.delete("/appointments/{appointment_id}", summary="Delete an appointment")
async def delete_appointment(appointment_id: str):
    try:
        deleted = await appointments_store.delete_appointment(appointment_id)
    except Exception:
        logger.exception("Error deleting appointment")
        raise HTTPException(status_code=500, detail="Failed to delete appointment")
    if not deleted:
        raise HTTPException(status_code=404, detail="Appointment not found")

    logger.info("Deleted appointment: %s", appointment_id)
    return {"message": "Appointment deleted successfully"}
