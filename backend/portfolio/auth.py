from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt
from passlib.context import CryptContext

from portfolio.config import Settings, get_settings
from portfolio.schemas import UserCreate, UserRecord
from portfolio.storage import DuplicateEmailError, Storage

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def is_admin_email(email: str, settings: Settings) -> bool:
    """Only consulted once, when an account is provisioned."""
    return bool(settings.admin_email) and email.lower() == settings.admin_email.strip().lower()


def create_session_token(sid: str, expires_at: datetime) -> str:
    settings = get_settings()
    payload = {"sid": sid, "exp": expires_at}
    return jwt.encode(payload, settings.session_secret, algorithm=ALGORITHM)


def decode_session_token(token: str) -> str:
    settings = get_settings()
    payload = jwt.decode(token, settings.session_secret, algorithms=[ALGORITHM])
    return payload["sid"]


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


async def open_session(response: Response, user: UserRecord, storage: Storage) -> None:
    """Create a server-side session and attach its cookie to the response."""
    settings = get_settings()
    max_age = timedelta(days=settings.session_max_age_days)
    expires_at = datetime.now(timezone.utc) + max_age
    sid = await storage.create_session(user.id, expires_at)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=create_session_token(sid, expires_at),
        max_age=int(max_age.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


async def close_session(request: Request, response: Response, storage: Storage) -> None:
    settings = get_settings()
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        try:
            await storage.delete_session(decode_session_token(token))
        except (JWTError, KeyError):
            pass
    response.delete_cookie(settings.session_cookie_name)


async def _session_user(request: Request, storage: Storage) -> Optional[UserRecord]:
    settings = get_settings()
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return None
    try:
        sid = decode_session_token(token)
    except (JWTError, KeyError):
        return None

    user_id = await storage.get_session_user_id(sid)
    if user_id is None:
        return None
    return await storage.get_user(user_id)


async def _dev_user(storage: Storage, settings: Settings) -> UserRecord:
    """Development-only identity; ensures the configured dev user exists."""
    user = await storage.get_user_by_email(settings.dev_user_email)
    if user is not None:
        return user
    try:
        return await storage.create_user(
            UserCreate(email=settings.dev_user_email, first_name="Dev", provider="dev"),
            is_admin=is_admin_email(settings.dev_user_email, settings),
        )
    except DuplicateEmailError:
        return await storage.get_user_by_email(settings.dev_user_email)


# Optional auth: returns None for anonymous requests
async def get_optional_user(
    request: Request,
    storage: Storage = Depends(get_storage),
) -> Optional[UserRecord]:
    settings = get_settings()
    if settings.dev_auth_bypass:
        return await _dev_user(storage, settings)
    return await _session_user(request, storage)


async def get_current_user(
    user: Optional[UserRecord] = Depends(get_optional_user),
) -> UserRecord:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Não autenticado",
        )
    return user


async def require_admin(user: UserRecord = Depends(get_current_user)) -> UserRecord:
    """Dependency that requires the current user to be an admin."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso de administrador necessário",
        )
    return user
