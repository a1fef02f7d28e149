"""Dashboard statistics, recomputed from the current entities on every call."""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from schemas import ApplicationStatus, EntityKind, Interview, JobApplication, Stats, StatusCounts, ensure_utc

_ONE_DAY = timedelta(days=1)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_stats(
    applications: Iterable[JobApplication],
    interviews: Iterable[Interview],
    now: Optional[datetime] = None,
) -> Stats:
    applications = list(applications)
    now = ensure_utc(now) if now else datetime.now(timezone.utc)

    counts = {status.value: 0 for status in ApplicationStatus}
    for application in applications:
        counts[ApplicationStatus(application.status).value] += 1

    total = len(applications)
    responded = counts[ApplicationStatus.INTERVIEW.value] + counts[ApplicationStatus.OFFER.value]
    response_rate = _round_half_up(responded / total * 100) if total else 0

    days_in_search = 0
    if applications:
        earliest = min(ensure_utc(application.applied_date) for application in applications)
        days_in_search = max(0, (now - earliest) // _ONE_DAY)

    return Stats(
        total_applications=total,
        interviews_scheduled=sum(1 for _ in interviews),
        response_rate=response_rate,
        days_in_search=days_in_search,
        applications_by_status=StatusCounts(**counts),
    )


def compute_stats_for_user(store, user_id: int, now: Optional[datetime] = None) -> Stats:
    return compute_stats(
        store.list_by_owner(EntityKind.APPLICATION, user_id),
        store.list_by_owner(EntityKind.INTERVIEW, user_id),
        now=now,
    )
