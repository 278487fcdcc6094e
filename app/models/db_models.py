# app/models/db_models.py
"""
SQLAlchemy table definitions for calls, appointments, users and contacts.
The module imports the shared `metadata` from app.db.db so `connect_db()` can create tables.

Timestamps are ISO strings (lexicographic range filters work); nested structures
are stored as JSON text and decoded by the storage modules.
"""
import sqlalchemy as sa
from app.db.db import get_metadata

metadata = get_metadata()

# Calls pulled from Exotel (or created by the status callback)
calls = sa.Table(
    "calls",
    metadata,
    sa.Column("sid", sa.String(length=128), primary_key=True),
    sa.Column("from_number", sa.String(length=64), nullable=True),
    sa.Column("to_number", sa.String(length=64), nullable=True),
    sa.Column("status", sa.String(length=64), nullable=True),
    sa.Column("start_time", sa.String(length=64), nullable=True, index=True),
    sa.Column("end_time", sa.String(length=64), nullable=True),
    sa.Column("duration", sa.String(length=32), nullable=True),
    sa.Column("direction", sa.String(length=64), nullable=True),
    sa.Column("recordings_json", sa.Text, nullable=False, default="[]"),
    sa.Column("transcription", sa.Text, nullable=True),
    sa.Column("is_lead", sa.Boolean, nullable=False, default=False),
    sa.Column("lead_details_json", sa.Text, nullable=True),
    sa.Column("is_appointment", sa.Boolean, nullable=False, default=False),
    sa.Column("appointment_details_json", sa.Text, nullable=True),  # legacy shape, read only
    sa.Column("is_processed", sa.Boolean, nullable=False, default=False, index=True),
    sa.Column("lead_analysis_at", sa.String(length=64), nullable=True),
    sa.Column("confidence_score", sa.Float, nullable=True),
    sa.Column("extraction_method", sa.String(length=64), nullable=True),
)

appointments = sa.Table(
    "appointments",
    metadata,
    sa.Column("id", sa.String(length=64), primary_key=True),
    sa.Column("client_name", sa.String(length=256), nullable=False),
    sa.Column("phone", sa.String(length=64), nullable=False),
    sa.Column("reason", sa.Text, nullable=False),
    sa.Column("status", sa.String(length=32), nullable=False, default="Pending"),
    sa.Column("date", sa.String(length=64), nullable=False, index=True),
    sa.Column("time", sa.String(length=64), nullable=False),
    sa.Column("insurance", sa.String(length=256), nullable=False, default="Not Specified"),
    sa.Column("duration_seconds", sa.Integer, nullable=False, default=0),
    sa.Column("priority", sa.String(length=32), nullable=True),
    sa.Column("created_at", sa.String(length=64), nullable=True),
    sa.Column("updated_at", sa.String(length=64), nullable=True),
    # one appointment per originating call
    sa.Column("call_sid", sa.String(length=128), nullable=True, unique=True),
    sa.Column("notes", sa.Text, nullable=False, default=""),
)

users = sa.Table(
    "users",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("email", sa.String(length=256), nullable=False, unique=True),
    sa.Column("password", sa.String(length=256), nullable=False),
    sa.Column("name", sa.String(length=256), nullable=False),
    sa.Column("assigned_phone_number", sa.String(length=64), nullable=True, unique=True),
    sa.Column("role", sa.String(length=16), nullable=False, default="user"),
    sa.Column("created_at", sa.String(length=64), nullable=True),
)

contacts = sa.Table(
    "contacts",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("name", sa.String(length=256), nullable=False),
    sa.Column("email", sa.String(length=256), nullable=False),
    sa.Column("phone_number", sa.String(length=64), nullable=False),
    sa.Column("message", sa.Text, nullable=True),
    sa.Column("submitted_at", sa.String(length=64), nullable=True),
)
