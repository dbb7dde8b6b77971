import logging

import app.models
from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import SessionLocal, get_db
from app.core.errors import StorageUnavailable, WorkflowError
from app.routers import event_types as event_types_router
from app.routers import form_entries as form_entries_router
from app.routers import forms as forms_router
from app.routers import ministries as ministries_router
from app.routers import notifications as notifications_router
from app.routers import reports as reports_router
from app.routers import users as users_router
from app.routers import whoami as whoami_router
from app.services.reporting import stalled_forms

app = FastAPI(title="Ministry Forms API", version="0.1.0")

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(timezone="UTC")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(whoami_router.router)
app.include_router(forms_router.router)
app.include_router(form_entries_router.router)
app.include_router(ministries_router.router)
app.include_router(ministries_router.admin_router)
app.include_router(event_types_router.router)
app.include_router(event_types_router.admin_router)
app.include_router(users_router.router)
app.include_router(notifications_router.router)
app.include_router(reports_router.router)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("workflow_error", extra={"code": exc.code, "path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.get("/health", tags=["health"])
def health(db: Session = Depends(get_db)) -> dict[str, str]:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc
    return {"status": "ok"}


def _send_stalled_forms_digest() -> None:
    with SessionLocal() as session:
        stalled = stalled_forms(session, older_than_days=settings.STALLED_FORM_DAYS)
        if not stalled:
            return
        logger.info(
            "stalled_forms_digest",
            extra={
                "total_stalled": len(stalled),
                "form_ids": [item.form_id for item in stalled],
                "unassigned_form_ids": [item.form_id for item in stalled if item.no_assigned_pillars],
            },
        )


@app.on_event("startup")
def start_scheduled_jobs() -> None:
    if not settings.SCHEDULER_ENABLED:
        return
    if not scheduler.running:
        scheduler.start()
    scheduler.add_job(
        _send_stalled_forms_digest,
        trigger="cron",
        hour=2,
        minute=0,
        id="stalled_forms_digest",
        replace_existing=True,
    )


@app.on_event("shutdown")
def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
