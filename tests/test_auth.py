from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth import ALGORITHM, AdminCredentials, Authenticator, TokenService, bearer_token, pwd_context
from errors import AuthenticationError

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def tokens(clock):
    return TokenService("secret", "admin", clock=clock)


def test_token_valid_just_before_expiry(tokens, clock):
    token = tokens.issue()
    clock.now = T0 + timedelta(hours=23, minutes=59)
    assert tokens.validate(token) is True


def test_token_rejected_just_after_expiry(tokens, clock):
    token = tokens.issue()
    clock.now = T0 + timedelta(hours=24, minutes=1)
    assert tokens.validate(token) is False


@pytest.mark.parametrize("bad", [None, "", "not-a-jwt", "a.b.c", 12345])
def test_validate_never_raises_on_garbage(tokens, bad):
    assert tokens.validate(bad) is False


def test_token_signed_with_other_secret_is_rejected(clock):
    forged = TokenService("other-secret", "admin", clock=clock).issue()
    assert TokenService("secret", "admin", clock=clock).validate(forged) is False


def test_token_without_admin_role_is_rejected(tokens):
    exp = int((T0 + timedelta(hours=1)).timestamp())
    token = jwt.encode({"sub": "admin", "role": "viewer", "exp": exp}, "secret", algorithm=ALGORITHM)
    assert tokens.validate(token) is False


def test_token_without_expiry_is_rejected(tokens):
    token = jwt.encode({"sub": "admin", "role": "admin"}, "secret", algorithm=ALGORITHM)
    assert tokens.validate(token) is False


def test_revoke_is_a_noop_for_stateless_tokens(tokens):
    token = tokens.issue()
    tokens.revoke(token)
    assert tokens.validate(token) is True


@pytest.mark.parametrize(
    "header, expected",
    [
        (None, None),
        ("", None),
        ("Basic abc", None),
        ("Bearer ", None),
        ("Bearer abc.def", "abc.def"),
        ("bearer abc", "abc"),
    ],
)
def test_bearer_token(header, expected):
    assert bearer_token(header) == expected


def test_credentials_check_both_fields():
    creds = AdminCredentials("admin", password="s3cret")
    assert creds.verify("admin", "s3cret")
    assert not creds.verify("admin", "wrong")
    assert not creds.verify("root", "s3cret")


def test_credentials_accept_precomputed_hash():
    creds = AdminCredentials("admin", password_hash=pwd_context.hash("hashed-pw"))
    assert creds.verify("admin", "hashed-pw")


def test_credentials_require_a_password():
    with pytest.raises(ValueError):
        AdminCredentials("admin")


def test_login_issues_valid_token_and_rejects_bad_credentials(tokens):
    auth = Authenticator(AdminCredentials("admin", password="pw"), tokens)
    token = auth.login("admin", "pw")
    assert auth.is_authenticated(f"Bearer {token}")

    with pytest.raises(AuthenticationError):
        auth.login("admin", "nope")
