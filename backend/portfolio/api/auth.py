from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from portfolio.auth import (
    close_session,
    get_current_user,
    get_storage,
    hash_password,
    is_admin_email,
    open_session,
    verify_password,
)
from portfolio.config import get_settings
from portfolio.schemas import (
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserCreate,
    UserRecord,
    UserResponse,
    UserUpdate,
)
from portfolio.storage import DuplicateEmailError, Storage

router = APIRouter()

# Redirect-style endpoints used by the frontend's login/logout links
redirect_router = APIRouter()

EMAIL_TAKEN = "Este email já está cadastrado"
INVALID_CREDENTIALS = "Email ou senha inválidos"


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    response: Response,
    storage: Storage = Depends(get_storage),
):
    if await storage.get_user_by_email(body.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_TAKEN)

    try:
        user = await storage.create_user(
            UserCreate(
                email=body.email,
                hashed_password=hash_password(body.password),
                first_name=body.first_name,
                last_name=body.last_name,
            ),
            is_admin=is_admin_email(body.email, get_settings()),
        )
    except DuplicateEmailError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_TAKEN)

    await open_session(response, user, storage)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=UserResponse)
async def login(
    body: LoginRequest,
    response: Response,
    storage: Storage = Depends(get_storage),
):
    user = await storage.get_user_by_email(body.email)

    if user is None or user.hashed_password is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_CREDENTIALS,
        )

    if not verify_password(body.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_CREDENTIALS,
        )

    await open_session(response, user, storage)
    return UserResponse.model_validate(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    storage: Storage = Depends(get_storage),
):
    await close_session(request, response, storage)
    return MessageResponse(message="Sessão encerrada")


@router.get("/user", response_model=UserResponse)
async def get_user(user: UserRecord = Depends(get_current_user)):
    return UserResponse.model_validate(user)


@router.patch("/user", response_model=UserResponse)
async def update_user(
    body: UserUpdate,
    user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    updated = await storage.update_user(user.id, body.changes())
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuário não encontrado")
    return UserResponse.model_validate(updated)


@redirect_router.get("/login")
async def login_redirect():
    return RedirectResponse(url="/auth", status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@redirect_router.get("/logout")
async def logout_redirect(request: Request, storage: Storage = Depends(get_storage)):
    response = RedirectResponse(url="/", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    await close_session(request, response, storage)
    return response
