"""Account profile + admin API.

- PATCH /users/me → update own profile (company info, OKRs, calendar, ...)
- GET /admin/users → list all accounts (admin only)
"""

from fastapi import APIRouter, Depends, HTTPException

from bizdesk.api.deps import get_identity_service
from bizdesk.auth.dependencies import get_current_user, require_role
from bizdesk.auth.jwt import Claims
from bizdesk.auth.roles import Role
from bizdesk.schemas.account import AccountRead, AccountSummary, ProfileUpdate
from bizdesk.services.identity_service import AccountNotFoundError, IdentityService

router = APIRouter()


@router.patch("/users/me", response_model=AccountRead)
async def update_me(
    body: ProfileUpdate,
    claims: Claims = Depends(get_current_user),
    svc: IdentityService = Depends(get_identity_service),
):
    try:
        return await svc.update_profile(
            claims.account_id, body.model_dump(exclude_unset=True)
        )
    except AccountNotFoundError:
        raise HTTPException(status_code=404, detail="Account not found")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get(
    "/admin/users",
    response_model=list[AccountSummary],
    dependencies=[Depends(require_role(Role.ADMIN))],
)
async def list_users(svc: IdentityService = Depends(get_identity_service)):
    """List all accounts without profile payloads."""
    return await svc.list_accounts()
