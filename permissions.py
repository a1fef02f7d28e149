import structlog

import errors
from schemas import EntityKind

logger = structlog.get_logger(__name__)


def authorize(user_id: int, owner_id: int) -> bool:
    """Owners only; there are no roles or admin overrides."""
    return user_id == owner_id


def ensure_owner(user_id: int, entity) -> None:
    if not authorize(user_id, entity.user_id):
        logger.warning(
            "Ownership check failed",
            user_id=user_id,
            owner_id=entity.user_id,
            entity=type(entity).__name__,
            entity_id=entity.id,
        )
        raise errors.Forbidden()


def load_owned(store, kind: EntityKind, entity_id: int, user_id: int):
    """Fetch an entity the caller owns.

    A missing id is reported as NotFound before ownership is looked at, so
    non-owners learn nothing more than owners would.
    """
    entity = store.get(kind, entity_id)
    if entity is None:
        raise errors.NotFound(f"{kind.label} not found")
    ensure_owner(user_id, entity)
    return entity


def check_application_reference(store, application_id: int, user_id: int) -> None:
    """Interviews may only point at an existing application of the same user."""
    application = store.get(EntityKind.APPLICATION, application_id)
    if application is None:
        raise errors.ValidationError(f"Job application {application_id} does not exist")
    ensure_owner(user_id, application)
