"""IdentityService — account lifecycle against the in-memory store.

Learn: The service takes an injectable clock, so reset-code expiry and
token timestamps are tested by moving a fake clock forward instead of
sleeping. Tokens issued under the fake clock are verified at the same
fake instant.
"""

from datetime import datetime, timedelta, timezone

import pytest

from bizdesk.auth.password import NoCredential
from bizdesk.auth.roles import Role
from bizdesk.services import identity_service
from bizdesk.services.identity_service import (
    AccountNotFoundError,
    DuplicateAccountError,
    IdentityService,
    InvalidAssertionError,
    InvalidCredentialError,
    InvalidResetCodeError,
    generate_reset_code,
)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock():
    return FakeClock(datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture()
def svc(store, token_service, verifier, code_sender, clock):
    return IdentityService(
        store=store,
        tokens=token_service,
        verifier=verifier,
        code_sender=code_sender,
        clock=clock,
    )


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_issues_valid_session(svc, store, token_service, clock):
    result = await svc.register("Sara", "09120000001", "s3cret-pass")

    claims = token_service.verify(result.token, now=clock())
    assert claims.account_id == str(result.account.id)
    assert claims.name == "Sara"
    assert claims.role is Role.USER

    assert result.account.phone == "09120000001"
    assert "password_hash" not in result.account.model_dump()
    assert "reset_code" not in result.account.model_dump()

    stored = await store.find_by_identifier("09120000001")
    assert stored.password_hash.startswith("$2")
    assert "s3cret-pass" not in stored.password_hash


@pytest.mark.asyncio
async def test_register_sets_profile_defaults(svc):
    result = await svc.register(
        "Sara", "09120000002", "s3cret-pass",
        profile={"company_name": "Acme", "position": "CEO"},
    )
    account = result.account
    assert account.company_name == "Acme"
    assert account.position == "CEO"
    assert account.subscription_tier == "free"
    assert account.calendar_events == []
    assert account.okrs_data == {"yearly": [], "quarterly": [], "monthly": []}
    assert account.pomodoro_stats["total_points"] == 0


@pytest.mark.asyncio
async def test_register_duplicate_phone_leaves_store_unchanged(svc, store):
    await svc.register("Sara", "09120000003", "s3cret-pass")
    with pytest.raises(DuplicateAccountError):
        await svc.register("Someone Else", "09120000003", "other-pass")
    assert len(store) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("phone", ["sara@x.io", "  Sara@X.io ", "   "])
async def test_register_refuses_non_phone_identifier(svc, store, phone):
    with pytest.raises(ValueError):
        await svc.register("Sara", phone, "s3cret-pass")
    assert len(store) == 0


@pytest.mark.asyncio
async def test_register_duplicate_with_surrounding_whitespace(svc, store):
    await svc.register("Sara", "09120000004", "s3cret-pass")
    with pytest.raises(DuplicateAccountError):
        await svc.register("Sara", "  09120000004 ", "s3cret-pass")
    assert len(store) == 1


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_with_correct_password(svc, token_service, clock):
    registered = await svc.register("Sara", "09120000010", "s3cret-pass")
    result = await svc.login("09120000010", "s3cret-pass")
    assert result.account.id == registered.account.id
    assert token_service.verify(result.token, now=clock()).account_id == str(
        registered.account.id
    )


@pytest.mark.asyncio
async def test_login_wrong_password(svc):
    await svc.register("Sara", "09120000011", "s3cret-pass")
    with pytest.raises(InvalidCredentialError):
        await svc.login("09120000011", "wrong-pass")


@pytest.mark.asyncio
async def test_login_unknown_identifier(svc):
    with pytest.raises(AccountNotFoundError):
        await svc.login("09999999999", "whatever-pass")


@pytest.mark.asyncio
async def test_login_reflects_role_change(svc, token_service, clock):
    await svc.register("Sara", "09120000012", "s3cret-pass")
    await svc.set_role("09120000012", Role.ADMIN)
    result = await svc.login("09120000012", "s3cret-pass")
    assert token_service.verify(result.token, now=clock()).role is Role.ADMIN


# ═══════════════════════════════════════════════════════════
# Google sign-in
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_federated_login_creates_account_without_password(svc, store, verifier):
    verifier.add("google-token-1", "Sara@Example.com", name="Sara G")

    result = await svc.federated_login("google-token-1")

    assert result.account.email == "sara@example.com"
    assert result.account.phone is None
    stored = await store.find_by_identifier("sara@example.com")
    assert stored is not None
    assert stored.password_hash is None
    assert isinstance(stored.credential, NoCredential)
    assert len(store) == 1


@pytest.mark.asyncio
async def test_federated_login_reuses_existing_account(svc, store, verifier):
    verifier.add("google-token-2", "reza@example.com")
    first = await svc.federated_login("google-token-2")
    second = await svc.federated_login("google-token-2")
    assert first.account.id == second.account.id
    assert len(store) == 1


@pytest.mark.asyncio
async def test_federated_login_rejects_bad_assertion(svc, store):
    with pytest.raises(InvalidAssertionError):
        await svc.federated_login("forged-token")
    assert len(store) == 0


@pytest.mark.asyncio
async def test_password_login_on_federated_account_never_compares(
    svc, verifier, monkeypatch
):
    """A password-less account is refused before any hash comparison."""
    verifier.add("google-token-3", "nima@example.com")
    await svc.federated_login("google-token-3")

    def fail_verify(*args, **kwargs):
        raise AssertionError("verify_password must not be called")

    monkeypatch.setattr(identity_service, "verify_password", fail_verify)

    with pytest.raises(InvalidCredentialError):
        await svc.login("nima@example.com", "")
    with pytest.raises(InvalidCredentialError):
        await svc.login("nima@example.com", "any-password")


# ═══════════════════════════════════════════════════════════
# Password reset
# ═══════════════════════════════════════════════════════════


def _codes(monkeypatch, *codes):
    it = iter(codes)
    monkeypatch.setattr(identity_service, "generate_reset_code", lambda: next(it))


@pytest.mark.asyncio
async def test_reset_code_flow(svc, store, code_sender, clock):
    registered = await svc.register("Sara", "09120000020", "old-password")

    await svc.request_reset_code("09120000020")
    assert len(code_sender.sent) == 1
    account_id, code = code_sender.sent[0]
    assert account_id == str(registered.account.id)

    stored = await store.find_by_identifier("09120000020")
    assert stored.reset_code == code
    assert stored.reset_code_expires_at == clock() + timedelta(minutes=10)

    clock.advance(minutes=5)
    await svc.redeem_reset_code("09120000020", code, "new-password")

    assert stored.reset_code is None
    assert stored.reset_code_expires_at is None
    await svc.login("09120000020", "new-password")
    with pytest.raises(InvalidCredentialError):
        await svc.login("09120000020", "old-password")


@pytest.mark.asyncio
async def test_reset_code_is_single_use(svc, code_sender):
    await svc.register("Sara", "09120000021", "old-password")
    await svc.request_reset_code("09120000021")
    code = code_sender.last_code

    await svc.redeem_reset_code("09120000021", code, "new-password")
    with pytest.raises(InvalidResetCodeError):
        await svc.redeem_reset_code("09120000021", code, "third-password")

    await svc.login("09120000021", "new-password")


@pytest.mark.asyncio
async def test_expired_reset_code_is_rejected(svc, store, code_sender, clock):
    await svc.register("Sara", "09120000022", "old-password")
    await svc.request_reset_code("09120000022")
    code = code_sender.last_code

    clock.advance(minutes=11)
    with pytest.raises(InvalidResetCodeError):
        await svc.redeem_reset_code("09120000022", code, "new-password")

    await svc.login("09120000022", "old-password")


@pytest.mark.asyncio
async def test_reset_code_rejected_at_exact_expiry(svc, code_sender, clock):
    await svc.register("Sara", "09120000023", "old-password")
    await svc.request_reset_code("09120000023")
    clock.advance(minutes=10)
    with pytest.raises(InvalidResetCodeError):
        await svc.redeem_reset_code("09120000023", code_sender.last_code, "new-password")


@pytest.mark.asyncio
async def test_wrong_reset_code_keeps_pending_code(svc, store, monkeypatch):
    _codes(monkeypatch, "111111")
    await svc.register("Sara", "09120000024", "old-password")
    await svc.request_reset_code("09120000024")

    with pytest.raises(InvalidResetCodeError):
        await svc.redeem_reset_code("09120000024", "999999", "new-password")

    stored = await store.find_by_identifier("09120000024")
    assert stored.reset_code == "111111"
    await svc.login("09120000024", "old-password")
    await svc.redeem_reset_code("09120000024", "111111", "new-password")


@pytest.mark.asyncio
async def test_new_reset_code_supersedes_old(svc, monkeypatch):
    _codes(monkeypatch, "111111", "222222")
    await svc.register("Sara", "09120000025", "old-password")
    await svc.request_reset_code("09120000025")
    await svc.request_reset_code("09120000025")

    with pytest.raises(InvalidResetCodeError):
        await svc.redeem_reset_code("09120000025", "111111", "new-password")
    await svc.redeem_reset_code("09120000025", "222222", "new-password")


@pytest.mark.asyncio
async def test_reset_without_pending_code(svc):
    await svc.register("Sara", "09120000026", "old-password")
    with pytest.raises(InvalidResetCodeError):
        await svc.redeem_reset_code("09120000026", "000000", "new-password")
    with pytest.raises(InvalidResetCodeError):
        await svc.redeem_reset_code("09120000026", "", "new-password")


@pytest.mark.asyncio
async def test_request_reset_code_unknown_identifier(svc, code_sender):
    with pytest.raises(AccountNotFoundError):
        await svc.request_reset_code("09999999999")
    assert code_sender.sent == []


@pytest.mark.asyncio
async def test_redeem_unknown_identifier(svc):
    with pytest.raises(InvalidResetCodeError):
        await svc.redeem_reset_code("09999999999", "123456", "new-password")


@pytest.mark.asyncio
async def test_federated_account_can_set_password_via_reset(svc, verifier, code_sender):
    verifier.add("google-token-4", "leila@example.com")
    await svc.federated_login("google-token-4")

    await svc.request_reset_code("leila@example.com")
    await svc.redeem_reset_code("leila@example.com", code_sender.last_code, "first-password")

    await svc.login("leila@example.com", "first-password")


def test_generate_reset_code_shape():
    for _ in range(50):
        code = generate_reset_code()
        assert len(code) == 6
        assert code.isdigit()


# ═══════════════════════════════════════════════════════════
# Profile / admin
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_update_profile(svc):
    registered = await svc.register("Sara", "09120000030", "s3cret-pass")
    updated = await svc.update_profile(
        str(registered.account.id),
        {"company_name": "Acme", "results": {"swot": "done"}},
    )
    assert updated.company_name == "Acme"
    assert updated.results == {"swot": "done"}


@pytest.mark.asyncio
async def test_update_profile_refuses_protected_fields(svc, store):
    registered = await svc.register("Sara", "09120000031", "s3cret-pass")
    with pytest.raises(ValueError):
        await svc.update_profile(str(registered.account.id), {"role": "admin"})
    stored = await store.find_by_identifier("09120000031")
    assert stored.role is Role.USER


@pytest.mark.asyncio
async def test_update_profile_refuses_null_for_required_field(svc, store):
    registered = await svc.register("Sara", "09120000032", "s3cret-pass")
    with pytest.raises(ValueError):
        await svc.update_profile(
            str(registered.account.id), {"company_name": "Acme", "name": None}
        )
    stored = await store.find_by_identifier("09120000032")
    assert stored.name == "Sara"
    assert stored.company_name is None


@pytest.mark.asyncio
async def test_get_account_unknown(svc):
    with pytest.raises(AccountNotFoundError):
        await svc.get_account("not-a-uuid")
    with pytest.raises(AccountNotFoundError):
        await svc.get_account("00000000-0000-0000-0000-000000000000")


@pytest.mark.asyncio
async def test_set_role_unknown_identifier(svc):
    with pytest.raises(AccountNotFoundError):
        await svc.set_role("09999999999", Role.ADMIN)


@pytest.mark.asyncio
async def test_list_accounts(svc):
    await svc.register("Sara", "09120000040", "s3cret-pass")
    await svc.register("Reza", "09120000041", "s3cret-pass")
    accounts = await svc.list_accounts()
    assert {a.phone for a in accounts} == {"09120000040", "09120000041"}
