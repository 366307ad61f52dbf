import pytest
from sqlalchemy import select

from auth_service.core import auth_helper
from auth_service.core.auth_helper import (
    authenticate_user,
    login_user,
    register_user,
    validate_registration,
)
from auth_service.core.errors import EmailTaken, InvalidCredentials, InvalidInput
from auth_service.core.passwords import verify_password
from auth_service.core.tokens import hash_token
from auth_service.models.auth import RefreshToken, User


@pytest.mark.anyio
async def test_register_normalizes_email_and_hashes_password(db) -> None:
    user = await register_user(db, "  User@Example.COM ", "longpassword")

    assert user.id
    assert user.email == "user@example.com"
    assert user.password_hash != "longpassword"
    assert verify_password("longpassword", user.password_hash)


@pytest.mark.parametrize(
    ("email", "password"),
    [
        ("not-an-email", "longpassword"),
        ("a@b", "longpassword"),
        ("a b@c.com", "longpassword"),
        ("a@b.com", "short"),
        ("a@b.com", "1234567"),
        ("", "longpassword"),
        ("a@b.com", ""),
        (None, None),
    ],
)
def test_validate_registration_rejects_bad_input(email, password) -> None:
    with pytest.raises(InvalidInput):
        validate_registration(email, password)


def test_validate_registration_accepts_eight_character_password() -> None:
    assert validate_registration("A@B.com", "12345678") == "a@b.com"


@pytest.mark.anyio
async def test_register_rejects_duplicate_email_case_insensitively(db) -> None:
    await register_user(db, "a@b.com", "longpassword")

    with pytest.raises(EmailTaken):
        await register_user(db, "A@B.COM", "anotherpassword")


@pytest.mark.anyio
async def test_unique_constraint_is_final_arbiter(db, monkeypatch) -> None:
    await register_user(db, "a@b.com", "longpassword")

    async def missed_precheck(session, email):
        return None

    # Simulates a concurrent registration slipping past the advisory check.
    monkeypatch.setattr(auth_helper, "get_user_by_email", missed_precheck)

    with pytest.raises(EmailTaken):
        await register_user(db, "a@b.com", "longpassword")

    users = (await db.execute(select(User))).scalars().all()
    assert [u.email for u in users] == ["a@b.com"]


@pytest.mark.anyio
async def test_authenticate_accepts_normalized_email(db) -> None:
    registered = await register_user(db, "User@Example.com", "longpassword")

    user = await authenticate_user(db, "user@example.com", "longpassword")

    assert user.id == registered.id


@pytest.mark.anyio
async def test_authentication_failures_are_indistinguishable(db) -> None:
    await register_user(db, "a@b.com", "longpassword")

    with pytest.raises(InvalidCredentials) as unknown:
        await authenticate_user(db, "nobody@b.com", "longpassword")
    with pytest.raises(InvalidCredentials) as wrong:
        await authenticate_user(db, "a@b.com", "wrongpassword")

    assert type(unknown.value) is type(wrong.value)
    assert unknown.value.code == wrong.value.code
    assert unknown.value.message == wrong.value.message


@pytest.mark.anyio
async def test_login_issues_tokens_and_stores_digest(db, rotator) -> None:
    await register_user(db, "a@b.com", "longpassword")

    user, pair = await login_user(db, rotator, "A@b.com", "longpassword")

    assert rotator.issuer.verify_access(pair.access_token).user_id == user.id
    assert rotator.issuer.verify_refresh(pair.refresh_token).user_id == user.id
    stored = (await db.execute(select(RefreshToken.token_hash))).scalars().all()
    assert stored == [hash_token(pair.refresh_token)]


@pytest.mark.anyio
async def test_failed_login_stores_nothing(db, rotator) -> None:
    await register_user(db, "a@b.com", "longpassword")

    with pytest.raises(InvalidCredentials):
        await login_user(db, rotator, "a@b.com", "wrongpassword")

    assert (await db.execute(select(RefreshToken))).scalars().all() == []
