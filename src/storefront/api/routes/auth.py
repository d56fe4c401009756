"""FastAPI routes for signup, login, and the current account."""

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from protean.utils.globals import current_domain

from storefront.access.dependencies import Principal, require_auth
from storefront.api.schemas import AuthResponse, LoginRequest, MeResponse, SignupRequest, UserResponse
from storefront.audit.capture import audited
from storefront.audit.entry import AuditAction, AuditResource
from storefront.errors import InvalidRequestError
from storefront.identity.authentication import authenticate
from storefront.identity.management import RegisterUser
from storefront.identity.repository import load_user
from storefront.identity.security import create_access_token, hash_password

router = APIRouter(prefix="/auth", tags=["auth"])


def _sign_in(request: Request, user) -> AuthResponse:
    # Audit the successful call under the account that was just signed in.
    request.state.principal = Principal(id=str(user.id), name=user.name, phone=user.phone, role=user.role)
    return AuthResponse(token=create_access_token(user.id, user.role), user=UserResponse.from_user(user))


@router.post(
    "/signup",
    status_code=201,
    response_model=AuthResponse,
    dependencies=[Depends(audited(AuditResource.USER, AuditAction.REGISTER))],
)
async def signup(request: Request, body: SignupRequest) -> AuthResponse:
    if not body.name or not body.phone or not body.password:
        raise InvalidRequestError("Name, phone and password are required")

    password_hash = await run_in_threadpool(hash_password, body.password)
    user_id = current_domain.process(
        RegisterUser(name=body.name, phone=body.phone, password_hash=password_hash),
        asynchronous=False,
    )
    return _sign_in(request, load_user(user_id))


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(audited(AuditResource.USER, AuditAction.LOGIN))],
)
async def login(request: Request, body: LoginRequest) -> AuthResponse:
    if not body.phone or not body.password:
        raise InvalidRequestError("Phone and password are required")

    # pbkdf2 runs in the threadpool.
    user = await run_in_threadpool(authenticate, body.phone, body.password)
    return _sign_in(request, user)


@router.get("/me", response_model=MeResponse)
async def me(principal: Principal = Depends(require_auth)) -> MeResponse:
    return MeResponse(user=UserResponse.from_user(load_user(principal.id)))
