from datetime import datetime, timedelta, timezone

import stats
from schemas import EntityKind, Interview, JobApplication

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_application(application_id: int, status: str = "applied", applied_date: datetime = NOW) -> JobApplication:
    return JobApplication(
        id=application_id,
        user_id=1,
        company=f"Company {application_id}",
        position="Engineer",
        status=status,
        applied_date=applied_date,
        updated_at=applied_date,
    )


def make_interview(interview_id: int, completed: bool = False) -> Interview:
    return Interview(
        id=interview_id,
        user_id=1,
        job_application_id=1,
        title="Onsite",
        date=NOW + timedelta(days=3),
        completed=completed,
    )


def test_no_applications():
    result = stats.compute_stats([], [], now=NOW)

    assert result.total_applications == 0
    assert result.interviews_scheduled == 0
    assert result.response_rate == 0
    assert result.days_in_search == 0
    assert result.applications_by_status.model_dump() == {
        "applied": 0,
        "interview": 0,
        "offer": 0,
        "rejected": 0,
    }


def test_response_rate_and_days_in_search():
    """Two days of searching, one interview out of three applications."""
    applications = [
        make_application(1, "applied", NOW - timedelta(days=2)),
        make_application(2, "interview", NOW),
        make_application(3, "rejected", NOW),
    ]

    result = stats.compute_stats(applications, [], now=NOW)

    assert result.total_applications == 3
    assert result.response_rate == 33
    assert result.days_in_search == 2


def test_offers_count_as_responses():
    applications = [make_application(1, "offer"), make_application(2, "interview")]
    assert stats.compute_stats(applications, [], now=NOW).response_rate == 100


def test_response_rate_rounds_half_up():
    applications = [make_application(1, "interview")] + [make_application(i) for i in range(2, 9)]
    # 1 / 8 = 12.5%
    assert stats.compute_stats(applications, [], now=NOW).response_rate == 13


def test_days_in_search_floors_partial_days():
    applications = [make_application(1, applied_date=NOW - timedelta(days=4, hours=23))]
    assert stats.compute_stats(applications, [], now=NOW).days_in_search == 4


def test_days_in_search_uses_earliest_application():
    applications = [
        make_application(1, applied_date=NOW - timedelta(days=1)),
        make_application(2, applied_date=NOW - timedelta(days=10)),
        make_application(3, applied_date=NOW - timedelta(days=5)),
    ]
    assert stats.compute_stats(applications, [], now=NOW).days_in_search == 10


def test_future_applied_date_never_goes_negative():
    applications = [make_application(1, applied_date=NOW + timedelta(days=3))]
    assert stats.compute_stats(applications, [], now=NOW).days_in_search == 0


def test_interviews_counted_regardless_of_completion():
    interviews = [make_interview(1), make_interview(2, completed=True)]
    assert stats.compute_stats([], interviews, now=NOW).interviews_scheduled == 2


def test_counts_by_status():
    applications = [
        make_application(1, "applied"),
        make_application(2, "applied"),
        make_application(3, "offer"),
        make_application(4, "rejected"),
    ]

    counts = stats.compute_stats(applications, [], now=NOW).applications_by_status

    assert (counts.applied, counts.interview, counts.offer, counts.rejected) == (2, 0, 1, 1)


def test_naive_now_is_treated_as_utc():
    applications = [make_application(1, applied_date=NOW - timedelta(days=3))]
    naive_now = NOW.replace(tzinfo=None)
    assert stats.compute_stats(applications, [], now=naive_now).days_in_search == 3


def test_compute_stats_for_user_reads_only_that_users_entities(store, make_user):
    alice = make_user()
    bob = make_user()
    application = store.create(
        EntityKind.APPLICATION,
        {"user_id": alice.id, "company": "Acme", "position": "Engineer", "status": "offer"},
    )
    store.create(EntityKind.APPLICATION, {"user_id": bob.id, "company": "Globex", "position": "Analyst"})
    store.create(
        EntityKind.INTERVIEW,
        {"user_id": alice.id, "job_application_id": application.id, "title": "Final round", "date": NOW},
    )

    result = stats.compute_stats_for_user(store, alice.id)

    assert result.total_applications == 1
    assert result.interviews_scheduled == 1
    assert result.applications_by_status.offer == 1
    assert result.response_rate == 100


def test_stats_serialize_with_camel_case_keys():
    payload = stats.compute_stats([], [], now=NOW).model_dump(by_alias=True)
    assert set(payload) == {
        "totalApplications",
        "interviewsScheduled",
        "responseRate",
        "daysInSearch",
        "applicationsByStatus",
    }
