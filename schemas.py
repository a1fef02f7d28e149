from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints, model_validator
from pydantic.alias_generators import to_camel


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite, clients without offsets) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDateTime = Annotated[datetime, AfterValidator(ensure_utc)]
NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
# INTEGER columns are 32-bit on Postgres
MAX_ID = 2**31 - 1
RowId = Annotated[int, Field(ge=1, le=MAX_ID)]


class ApplicationStatus(str, Enum):
    APPLIED = "applied"
    INTERVIEW = "interview"
    OFFER = "offer"
    REJECTED = "rejected"


class EntityKind(str, Enum):
    APPLICATION = "applications"
    DOCUMENT = "documents"
    INTERVIEW = "interviews"

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]

    @property
    def has_updated_at(self) -> bool:
        return self is not EntityKind.INTERVIEW


_KIND_LABELS = {
    EntityKind.APPLICATION: "Application",
    EntityKind.DOCUMENT: "Document",
    EntityKind.INTERVIEW: "Interview",
}


class ApiModel(BaseModel):
    # snake_case in Python, camelCase on the wire; both accepted on input
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PartialUpdate(ApiModel):
    """Base for PATCH bodies.

    Only the keys the client actually sent end up in ``changes()``, so an
    omitted field is left alone while an explicit ``null`` clears it. Fields
    listed in ``required_fields`` may be omitted but never cleared.
    """

    required_fields: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _reject_cleared_required(self):
        for name in self.required_fields:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class Message(ApiModel):
    message: str


# --- Users ---
class UserCreate(ApiModel):
    username: NonEmptyStr
    password: Annotated[str, Field(min_length=1)]
    full_name: Optional[str] = None
    email: Optional[str] = None
    skills: Optional[List[str]] = None


class LoginRequest(ApiModel):
    username: str
    password: str


class User(ApiModel):
    id: int
    username: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    skills: Optional[List[str]] = None
    created_at: UtcDateTime


class UserInDB(User):
    password: str  # bcrypt hash


# --- Job applications ---
class JobApplicationCreate(ApiModel):
    company: NonEmptyStr
    position: NonEmptyStr
    location: Optional[str] = None
    salary: Optional[str] = None
    job_type: Optional[str] = None
    work_mode: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    status: ApplicationStatus = ApplicationStatus.APPLIED
    resume_id: Optional[RowId] = None
    cover_id: Optional[RowId] = None
    url: Optional[str] = None
    contact_info: Optional[str] = None
    applied_date: Optional[UtcDateTime] = None


class JobApplicationUpdate(PartialUpdate):
    required_fields: ClassVar[Tuple[str, ...]] = ("company", "position", "status", "applied_date")

    company: Optional[NonEmptyStr] = None
    position: Optional[NonEmptyStr] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    job_type: Optional[str] = None
    work_mode: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[ApplicationStatus] = None
    resume_id: Optional[RowId] = None
    cover_id: Optional[RowId] = None
    url: Optional[str] = None
    contact_info: Optional[str] = None
    applied_date: Optional[UtcDateTime] = None


class JobApplication(ApiModel):
    id: int
    user_id: int
    company: str
    position: str
    location: Optional[str] = None
    salary: Optional[str] = None
    job_type: Optional[str] = None
    work_mode: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    status: ApplicationStatus = ApplicationStatus.APPLIED
    resume_id: Optional[int] = None
    cover_id: Optional[int] = None
    url: Optional[str] = None
    contact_info: Optional[str] = None
    applied_date: UtcDateTime
    updated_at: UtcDateTime


# --- Documents ---
class DocumentCreate(ApiModel):
    name: NonEmptyStr
    type: NonEmptyStr  # resume, cover_letter, other
    description: Optional[str] = None
    content: NonEmptyStr


class DocumentUpdate(PartialUpdate):
    required_fields: ClassVar[Tuple[str, ...]] = ("name", "type", "content", "usage_count")

    name: Optional[NonEmptyStr] = None
    type: Optional[NonEmptyStr] = None
    description: Optional[str] = None
    content: Optional[NonEmptyStr] = None
    usage_count: Optional[Annotated[int, Field(ge=0, le=MAX_ID)]] = None


class Document(ApiModel):
    id: int
    user_id: int
    name: str
    type: str
    description: Optional[str] = None
    content: str
    usage_count: int = 0
    created_at: UtcDateTime
    updated_at: UtcDateTime


# --- Interviews ---
class InterviewCreate(ApiModel):
    job_application_id: RowId
    title: NonEmptyStr
    date: UtcDateTime
    notes: Optional[str] = None
    completed: bool = False
    feedback: Optional[str] = None


class InterviewUpdate(PartialUpdate):
    required_fields: ClassVar[Tuple[str, ...]] = ("job_application_id", "title", "date", "completed")

    job_application_id: Optional[RowId] = None
    title: Optional[NonEmptyStr] = None
    date: Optional[UtcDateTime] = None
    notes: Optional[str] = None
    completed: Optional[bool] = None
    feedback: Optional[str] = None


class Interview(ApiModel):
    id: int
    user_id: int
    job_application_id: int
    title: str
    date: UtcDateTime
    notes: Optional[str] = None
    completed: bool = False
    feedback: Optional[str] = None


RECORD_TYPES = {
    EntityKind.APPLICATION: JobApplication,
    EntityKind.DOCUMENT: Document,
    EntityKind.INTERVIEW: Interview,
}


# --- Dashboard ---
class StatusCounts(ApiModel):
    applied: int = 0
    interview: int = 0
    offer: int = 0
    rejected: int = 0


class Stats(ApiModel):
    total_applications: int
    interviews_scheduled: int
    response_rate: int
    days_in_search: int
    applications_by_status: StatusCounts
