from typing import Any, Dict, List, Optional, Type

from sqlalchemy.orm import Session

import models


# --- User CRUD ---
def get_user_by_id(db: Session, user_id: int):
    """Get a user by their primary key ID."""
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_username(db: Session, username: str):
    return db.query(models.User).filter(models.User.username == username).first()


def create_user(db: Session, fields: Dict[str, Any]):
    db_user = models.User(**fields)
    db.add(db_user)
    db.flush()  # Assign ID without committing
    db.refresh(db_user)
    return db_user


# --- Owned entity CRUD (job applications, documents, interviews) ---
def create_entity(db: Session, model: Type[models.Base], fields: Dict[str, Any]):
    db_entity = model(**fields)
    db.add(db_entity)
    db.flush()
    db.refresh(db_entity)
    return db_entity


def get_entity(db: Session, model: Type[models.Base], entity_id: int):
    return db.get(model, entity_id)


def get_entities_for_user(db: Session, model: Type[models.Base], user_id: int) -> List[Any]:
    """Retrieves all rows of ``model`` owned by a user, oldest first."""
    return db.query(model).filter(model.user_id == user_id).order_by(model.id).all()


def update_entity(
    db: Session, model: Type[models.Base], entity_id: int, fields: Dict[str, Any]
) -> Optional[Any]:
    db_entity = db.get(model, entity_id)
    if not db_entity:
        return None

    for key, value in fields.items():
        setattr(db_entity, key, value)
    db.add(db_entity)  # add works for updates too
    db.flush()
    db.refresh(db_entity)
    return db_entity


def delete_entity(db: Session, model: Type[models.Base], entity_id: int) -> bool:
    db_entity = db.get(model, entity_id)
    if not db_entity:
        return False

    # ORM cascade removes dependent interviews when an application goes
    db.delete(db_entity)
    db.flush()
    return True
