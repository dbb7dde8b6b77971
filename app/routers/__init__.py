"""API routers for the ministry forms application."""

from app.routers import (
    event_types,
    form_entries,
    forms,
    ministries,
    notifications,
    reports,
    users,
    whoami,
)  # noqa: F401
