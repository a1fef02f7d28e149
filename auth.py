"""Username/password authentication backed by a signed session cookie.

Routes:
    POST /api/register   create an account and log it in
    POST /api/login      exchange credentials for a session
    POST /api/logout     drop the session
    GET  /api/user       the logged-in user, 401 otherwise

The cookie itself is handled by Starlette's ``SessionMiddleware`` (installed in
``main.create_app``); it only carries the user id. Passwords are stored as
bcrypt hashes and never serialized back to clients.
"""
from __future__ import annotations

import bcrypt
import structlog
from fastapi import APIRouter, Depends, Request, status

import errors
import schemas
from dependencies import SESSION_USER_KEY, get_current_user, get_store
from storage import Storage

logger = structlog.get_logger(__name__)

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72
BCRYPT_ROUNDS = 12

router = APIRouter(prefix="/api", tags=["Auth"])


def hash_password(password: str) -> str:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise errors.ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        logger.warning("Stored password hash is malformed")
        return False


@router.post("/register", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def register(
    payload: schemas.UserCreate,
    request: Request,
    store: Storage = Depends(get_store),
):
    if store.get_user_by_username(payload.username) is not None:
        raise errors.ValidationError("Username already exists")

    fields = payload.model_dump()
    fields["password"] = hash_password(payload.password)
    user = store.create_user(fields)

    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id
    logger.info("User registered", user_id=user.id, username=user.username)
    return user


@router.post("/login", response_model=schemas.User)
def login(
    payload: schemas.LoginRequest,
    request: Request,
    store: Storage = Depends(get_store),
):
    user = store.get_user_by_username(payload.username)
    if user is None or not verify_password(payload.password, user.password):
        logger.warning("Login failed", username=payload.username)
        raise errors.Unauthorized("Invalid username or password")

    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id
    logger.info("User logged in", user_id=user.id)
    return user


@router.post("/logout", response_model=schemas.Message)
def logout(request: Request):
    user_id = request.session.get(SESSION_USER_KEY)
    request.session.clear()
    if user_id is not None:
        logger.info("User logged out", user_id=user_id)
    return {"message": "Logged out"}


@router.get("/user", response_model=schemas.User)
def get_me(current_user: schemas.UserInDB = Depends(get_current_user)):
    """Returns the authenticated user's record."""
    return current_user
