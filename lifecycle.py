"""Status rules for job applications.

The four statuses form a free-form board rather than a pipeline: any status
may move to any other, and moving an application never touches its
interviews or documents.
"""
from __future__ import annotations

from typing import Any

import structlog

import errors
from schemas import ApplicationStatus, EntityKind, JobApplication

logger = structlog.get_logger(__name__)

DEFAULT_STATUS = ApplicationStatus.APPLIED
VALID_STATUSES = tuple(status.value for status in ApplicationStatus)


def validate_status(value: Any) -> ApplicationStatus:
    """Return the status for ``value`` or raise ``errors.ValidationError``."""
    if isinstance(value, ApplicationStatus):
        return value
    try:
        return ApplicationStatus(value)
    except ValueError:
        raise errors.ValidationError(
            f"Invalid status {value!r}; expected one of: {', '.join(VALID_STATUSES)}"
        )


def set_status(store, application_id: int, new_status: Any) -> JobApplication:
    status = validate_status(new_status)
    current = store.get(EntityKind.APPLICATION, application_id)
    if current is None:
        raise errors.NotFound(f"{EntityKind.APPLICATION.label} not found")

    updated = store.update(EntityKind.APPLICATION, application_id, {"status": status})
    log_transition(current, updated)
    return updated


def log_transition(before: JobApplication, after: JobApplication) -> None:
    if before.status == after.status:
        return
    logger.info(
        "Application status changed",
        application_id=after.id,
        user_id=after.user_id,
        from_status=before.status.value,
        to_status=after.status.value,
    )
