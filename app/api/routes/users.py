from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException, Request
from pydantic import Field

from app.services.user_accounts import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    UserAccountService,
)

from .store_helpers import bad_request, publish_change, read_session_factory, session_factory
from .store_models import CamelModel

router = APIRouter(tags=["users"])

CREDENTIALS_REQUIRED_MESSAGE = "البريد والكلمة المرورية مطلوبة"
EMAIL_TAKEN_MESSAGE = "البريد الإلكتروني مسجل مسبقاً"
INVALID_CREDENTIALS_MESSAGE = "بيانات الدخول غير صحيحة"


class LoginRequest(CamelModel):
    email: str | None = Field(default=None, max_length=320)
    password: str | None = Field(default=None, max_length=256)


class RegisterRequest(LoginRequest):
    name: str | None = Field(default=None, max_length=255)


class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    role: str
    balance: float
    created_at: datetime


@router.get("/api/users", response_model=list[UserResponse])
async def list_users(request: Request) -> list[UserResponse]:
    async with read_session_factory(request)() as session:
        users = await UserAccountService.list_users(session)
    return [UserResponse.model_validate(user) for user in users]


@router.post("/api/auth/register", response_model=UserResponse, status_code=201)
async def register(payload: RegisterRequest, request: Request) -> UserResponse:
    if not payload.email or not payload.password:
        raise bad_request(CREDENTIALS_REQUIRED_MESSAGE)

    try:
        async with session_factory(request).begin() as session:
            user = await UserAccountService.register(
                session,
                email=payload.email,
                password=payload.password,
                name=payload.name,
                bcrypt_rounds=request.app.state.settings.bcrypt_rounds,
            )
            response = UserResponse.model_validate(user)
    except EmailAlreadyRegisteredError as exc:
        raise bad_request(EMAIL_TAKEN_MESSAGE) from exc

    await publish_change(
        request,
        collection="users",
        operation_type="insert",
        document_key=response.id,
        document=response,
    )
    return response


@router.post("/api/auth/login", response_model=UserResponse)
async def login(payload: LoginRequest, request: Request) -> UserResponse:
    if not payload.email or not payload.password:
        raise bad_request(CREDENTIALS_REQUIRED_MESSAGE)

    try:
        async with read_session_factory(request)() as session:
            user = await UserAccountService.authenticate(
                session,
                email=payload.email,
                password=payload.password,
            )
    except InvalidCredentialsError as exc:
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS_MESSAGE) from exc
    return UserResponse.model_validate(user)
