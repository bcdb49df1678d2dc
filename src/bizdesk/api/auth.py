"""Auth API — registration, login, Google sign-in, password reset.

Learn: Routes for the account lifecycle:
- POST /auth/register → phone + password → account + session token
- POST /auth/login → phone/email + password → account + session token
- POST /auth/google → Google ID token → account (created on first use) + token
- POST /auth/reset-code → issue a 6-digit code (valid 10 minutes)
- POST /auth/reset-password → redeem the code, set a new password
- GET /auth/me → current account

Error mapping: duplicate / bad password / bad Google token / bad code → 400,
unknown account → 404.
"""

from fastapi import APIRouter, Depends, HTTPException

from bizdesk.api.deps import get_identity_service
from bizdesk.auth.dependencies import get_current_user
from bizdesk.auth.jwt import Claims
from bizdesk.schemas.account import (
    AccountRead,
    AuthResponse,
    GoogleLoginRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetCodeRequest,
    ResetPasswordRequest,
)
from bizdesk.services.identity_service import (
    AccountNotFoundError,
    AuthResult,
    DuplicateAccountError,
    IdentityService,
    InvalidAssertionError,
    InvalidCredentialError,
    InvalidResetCodeError,
)

router = APIRouter(prefix="/auth")


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(account=result.account, token=result.token)


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    svc: IdentityService = Depends(get_identity_service),
):
    """Create an account with phone + password."""
    try:
        result = await svc.register(
            name=body.name,
            phone=body.phone,
            password=body.password,
            profile=body.model_dump(include={"company_name", "company_size", "position"}),
        )
    except DuplicateAccountError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _auth_response(result)


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    svc: IdentityService = Depends(get_identity_service),
):
    """Login with phone (or email) and password."""
    try:
        result = await svc.login(body.identifier, body.password)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidCredentialError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _auth_response(result)


@router.post("/google", response_model=AuthResponse)
async def google_login(
    body: GoogleLoginRequest,
    svc: IdentityService = Depends(get_identity_service),
):
    """Sign in with a Google ID token."""
    try:
        result = await svc.federated_login(body.credential)
    except InvalidAssertionError:
        raise HTTPException(status_code=400, detail="Google sign-in could not be verified")
    return _auth_response(result)


# ─── Password reset ──────────────────────────────────────


@router.post("/reset-code", response_model=MessageResponse)
async def request_reset_code(
    body: ResetCodeRequest,
    svc: IdentityService = Depends(get_identity_service),
):
    """Issue a password-reset code, delivered out of band."""
    try:
        await svc.request_reset_code(body.identifier)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return MessageResponse(message="Reset code sent")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    svc: IdentityService = Depends(get_identity_service),
):
    """Redeem a reset code and set a new password."""
    try:
        await svc.redeem_reset_code(body.identifier, body.code, body.new_password)
    except InvalidResetCodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MessageResponse(message="Password updated")


# ─── Current account ─────────────────────────────────────


@router.get("/me", response_model=AccountRead)
async def get_me(
    claims: Claims = Depends(get_current_user),
    svc: IdentityService = Depends(get_identity_service),
):
    """Get the current authenticated account."""
    try:
        return await svc.get_account(claims.account_id)
    except AccountNotFoundError:
        raise HTTPException(status_code=404, detail="Account not found")
