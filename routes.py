from typing import List

import structlog
from fastapi import APIRouter, Depends, Response, status

import lifecycle
import permissions
import schemas
import stats
from dependencies import get_current_user, get_store
from schemas import EntityKind
from storage import Storage

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api")


def _create(store: Storage, kind: EntityKind, payload, user_id: int):
    fields = payload.model_dump()
    fields["user_id"] = user_id
    entity = store.create(kind, fields)
    logger.info("Entity created", kind=kind.value, entity_id=entity.id, user_id=user_id)
    return entity


def _delete(store: Storage, kind: EntityKind, entity_id: int, user_id: int) -> Response:
    permissions.load_owned(store, kind, entity_id, user_id)
    store.delete(kind, entity_id)
    logger.info("Entity deleted", kind=kind.value, entity_id=entity_id, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Job applications ---
@router.get("/applications", response_model=List[schemas.JobApplication], tags=["Applications"])
def list_applications(
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return store.list_by_owner(EntityKind.APPLICATION, current_user.id)


@router.get("/applications/{application_id}", response_model=schemas.JobApplication, tags=["Applications"])
def get_application(
    application_id: int,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return permissions.load_owned(store, EntityKind.APPLICATION, application_id, current_user.id)


@router.post(
    "/applications",
    response_model=schemas.JobApplication,
    status_code=status.HTTP_201_CREATED,
    tags=["Applications"],
)
def create_application(
    payload: schemas.JobApplicationCreate,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return _create(store, EntityKind.APPLICATION, payload, current_user.id)


@router.patch("/applications/{application_id}", response_model=schemas.JobApplication, tags=["Applications"])
def update_application(
    application_id: int,
    payload: schemas.JobApplicationUpdate,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    current = permissions.load_owned(store, EntityKind.APPLICATION, application_id, current_user.id)
    updated = store.update(EntityKind.APPLICATION, application_id, payload.changes())
    lifecycle.log_transition(current, updated)
    return updated


@router.delete(
    "/applications/{application_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["Applications"],
)
def delete_application(
    application_id: int,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return _delete(store, EntityKind.APPLICATION, application_id, current_user.id)


# --- Documents ---
@router.get("/documents", response_model=List[schemas.Document], tags=["Documents"])
def list_documents(
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return store.list_by_owner(EntityKind.DOCUMENT, current_user.id)


@router.get("/documents/{document_id}", response_model=schemas.Document, tags=["Documents"])
def get_document(
    document_id: int,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return permissions.load_owned(store, EntityKind.DOCUMENT, document_id, current_user.id)


@router.post(
    "/documents",
    response_model=schemas.Document,
    status_code=status.HTTP_201_CREATED,
    tags=["Documents"],
)
def create_document(
    payload: schemas.DocumentCreate,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return _create(store, EntityKind.DOCUMENT, payload, current_user.id)


@router.patch("/documents/{document_id}", response_model=schemas.Document, tags=["Documents"])
def update_document(
    document_id: int,
    payload: schemas.DocumentUpdate,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    permissions.load_owned(store, EntityKind.DOCUMENT, document_id, current_user.id)
    return store.update(EntityKind.DOCUMENT, document_id, payload.changes())


@router.delete(
    "/documents/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["Documents"],
)
def delete_document(
    document_id: int,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return _delete(store, EntityKind.DOCUMENT, document_id, current_user.id)


# --- Interviews ---
@router.get("/interviews", response_model=List[schemas.Interview], tags=["Interviews"])
def list_interviews(
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return store.list_by_owner(EntityKind.INTERVIEW, current_user.id)


@router.get("/interviews/{interview_id}", response_model=schemas.Interview, tags=["Interviews"])
def get_interview(
    interview_id: int,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return permissions.load_owned(store, EntityKind.INTERVIEW, interview_id, current_user.id)


@router.post(
    "/interviews",
    response_model=schemas.Interview,
    status_code=status.HTTP_201_CREATED,
    tags=["Interviews"],
)
def create_interview(
    payload: schemas.InterviewCreate,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    permissions.check_application_reference(store, payload.job_application_id, current_user.id)
    return _create(store, EntityKind.INTERVIEW, payload, current_user.id)


@router.patch("/interviews/{interview_id}", response_model=schemas.Interview, tags=["Interviews"])
def update_interview(
    interview_id: int,
    payload: schemas.InterviewUpdate,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    permissions.load_owned(store, EntityKind.INTERVIEW, interview_id, current_user.id)
    changes = payload.changes()
    if "job_application_id" in changes:
        permissions.check_application_reference(store, changes["job_application_id"], current_user.id)
    return store.update(EntityKind.INTERVIEW, interview_id, changes)


@router.delete(
    "/interviews/{interview_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["Interviews"],
)
def delete_interview(
    interview_id: int,
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return _delete(store, EntityKind.INTERVIEW, interview_id, current_user.id)


# --- Dashboard ---
@router.get("/stats", response_model=schemas.Stats, tags=["Dashboard"])
def get_stats(
    current_user: schemas.UserInDB = Depends(get_current_user),
    store: Storage = Depends(get_store),
):
    return stats.compute_stats_for_user(store, current_user.id)
