from fastapi import Depends, Request
from structlog.contextvars import bind_contextvars

import errors
import schemas
from storage import Storage

SESSION_USER_KEY = "user_id"


def get_store(request: Request) -> Storage:
    """The store constructed at startup lives on the application state."""
    return request.app.state.store


def get_current_user(request: Request, store: Storage = Depends(get_store)) -> schemas.UserInDB:
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        raise errors.Unauthorized()

    user = store.get_user(user_id)
    if user is None:
        # Session outlived its user (e.g. the memory store was restarted)
        request.session.clear()
        raise errors.Unauthorized()

    bind_contextvars(user_id=user.id)
    return user


def requires_login(route) -> bool:
    """Whether ``route`` depends on ``get_current_user``."""
    dependant = getattr(route, "dependant", None)
    if dependant is None:
        return False
    return any(dependency.call is get_current_user for dependency in dependant.dependencies)
