# app/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.appointments import router as appointments_router
from app.api.auth import router as auth_router
from app.api.calls import public_router as callbacks_router
from app.api.calls import router as calls_router
from app.api.contact import router as contact_router
from app.api.deps import close_clients, get_exotel_client
from app.api.leads import router as leads_router
from app.api.realtime import router as realtime_router
from app.config import get_settings
from app.core.notifier import broadcast_new_transcriptions
from app.core.orchestrator import fetch_and_save_calls
from app.core.scheduler import PeriodicJob
from app.db.db import connect_db, disconnect_db
from app.state.connections import ConnectionRegistry

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger("call-center")

app = FastAPI(
    title="Call Center Backend",
    version="0.1.0",
    description="Exotel call sync -> transcription -> lead analysis -> appointments, with a live dashboard feed",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(leads_router, prefix="/api", tags=["leads"])
app.include_router(appointments_router, prefix="/api", tags=["appointments"])
app.include_router(calls_router, prefix="/api", tags=["calls"])
app.include_router(callbacks_router, prefix="/api", tags=["callbacks"])
app.include_router(contact_router, prefix="/api", tags=["contact"])
app.include_router(realtime_router, tags=["realtime"])

# Connected dashboard clients, owned by the app and shared with the notification job
app.state.connections = ConnectionRegistry()
app.state.jobs = []


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = sorted({".".join(str(p) for p in err.get("loc", ())[1:]) or "body" for err in exc.errors()})
    return JSONResponse(status_code=400, content={"detail": f"Invalid or missing fields: {', '.join(fields)}"})


@app.get("/", tags=["health"])
async def root():
    return JSONResponse({"status": "ok", "service": "call-center-backend", "env": settings.ENV})


@app.get("/health", tags=["health"])
async def health():
    return JSONResponse({"status": "ok", "websocket_clients": len(app.state.connections)})


@app.on_event("startup")
async def on_startup():
    logger.info("Starting call center backend (env=%s)", settings.ENV)
    try:
        await connect_db(settings.DB_URL)
    except Exception:
        logger.exception("Database connection failed")
        raise
    logger.info("Database connected")

    if settings.SCHEDULER_ENABLED:
        registry = app.state.connections

        async def sync_calls():
            logger.info("Auto-fetching calls from Exotel...")
            await fetch_and_save_calls(get_exotel_client())

        async def notify_clients():
            await broadcast_new_transcriptions(registry)

        app.state.jobs = [
            PeriodicJob("exotel-sync", settings.SYNC_INTERVAL_SECONDS, sync_calls),
            PeriodicJob("transcription-broadcast", settings.NOTIFY_INTERVAL_SECONDS, notify_clients),
        ]
        for job in app.state.jobs:
            job.start()


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Shutting down call center backend")
    for job in app.state.jobs:
        await job.stop()
    app.state.jobs = []
    await close_clients()
    await disconnect_db()


# If run directly: start uvicorn programmatically (handy for `python -m app.main`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=settings.ENV == "dev",
        log_level=settings.LOG_LEVEL,
    )
