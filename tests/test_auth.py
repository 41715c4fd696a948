from __future__ import annotations

from types import SimpleNamespace

import pytest
import requests
from fastapi import HTTPException
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from formlytics.core.auth import (
    AuthContext,
    JwksCache,
    _decode_clerk_jwt,
    _get_signing_key,
    get_current_user,
    get_session_context,
    require_auth_context,
)
from formlytics.core.provisioning import default_organization_name
from formlytics.models import Organization, User


def _page_request(*, authorization: str = "", cookies: dict | None = None) -> SimpleNamespace:
    headers = {"Authorization": authorization} if authorization else {}
    return SimpleNamespace(headers=headers, cookies=cookies or {}, state=SimpleNamespace())


def test_get_signing_key_missing_kid(monkeypatch: pytest.MonkeyPatch) -> None:
    from formlytics.core import auth

    monkeypatch.setattr(auth.jwt, "get_unverified_header", lambda token: {})
    with pytest.raises(HTTPException) as exc:
        _get_signing_key("token")
    assert exc.value.status_code == 401


def test_get_signing_key_no_matching_key(monkeypatch: pytest.MonkeyPatch) -> None:
    from formlytics.core import auth

    monkeypatch.setattr(auth.jwt, "get_unverified_header", lambda token: {"kid": "abc"})
    monkeypatch.setattr(auth.jwks_cache, "get", lambda url: {"keys": [{"kid": "zzz"}]})

    with pytest.raises(HTTPException) as exc:
        _get_signing_key("token")
    assert exc.value.status_code == 401


def test_get_signing_key_returns_matching_key(monkeypatch: pytest.MonkeyPatch) -> None:
    from formlytics.core import auth

    monkeypatch.setattr(auth.jwt, "get_unverified_header", lambda token: {"kid": "abc"})
    monkeypatch.setattr(auth.jwks_cache, "get", lambda url: {"keys": [{"kid": "abc", "kty": "RSA"}]})
    assert _get_signing_key("token")["kid"] == "abc"


def test_decode_clerk_jwt_invalid(monkeypatch: pytest.MonkeyPatch) -> None:
    from formlytics.core import auth

    monkeypatch.setattr(auth, "_get_signing_key", lambda token: {"kid": "abc"})

    def _boom(*args, **kwargs):  # noqa: ANN002, ANN003
        raise JWTError("bad token")

    monkeypatch.setattr(auth.jwt, "decode", _boom)
    with pytest.raises(HTTPException) as exc:
        _decode_clerk_jwt("token")
    assert exc.value.status_code == 401


def test_jwks_cache_fetches_and_reuses(monkeypatch: pytest.MonkeyPatch) -> None:
    from formlytics.core import auth

    calls = {"count": 0}

    class _Resp:
        def raise_for_status(self) -> None:
            return None

        def json(self) -> dict:
            return {"keys": [{"kid": "a"}]}

    def _get(url: str, timeout: int):  # noqa: ANN001
        calls["count"] += 1
        return _Resp()

    cache = JwksCache(ttl_seconds=300)
    monkeypatch.setattr(auth.requests, "get", _get)
    monkeypatch.setattr(auth.time, "time", lambda: 1000.0)
    assert cache.get("https://jwks.example") == cache.get("https://jwks.example")
    assert calls["count"] == 1


def test_session_context_reads_bearer_then_cookie(monkeypatch: pytest.MonkeyPatch) -> None:
    from formlytics.core import auth

    seen: list[str] = []

    def _decode(token: str) -> dict:
        seen.append(token)
        return {"sub": "user_1", "email": "ada@example.com"}

    monkeypatch.setattr(auth, "_decode_clerk_jwt", _decode)

    bearer = get_session_context(_page_request(authorization="Bearer header-jwt", cookies={"__session": "c"}))
    cookie = get_session_context(_page_request(cookies={"__session": "cookie-jwt"}))

    assert bearer.subject == "user_1"
    assert cookie.email == "ada@example.com"
    assert seen == ["header-jwt", "cookie-jwt"]


def test_session_context_is_none_without_token() -> None:
    assert get_session_context(_page_request()) is None
    assert get_session_context(_page_request(authorization="Basic abc")) is None


def test_session_context_is_none_for_unusable_token(monkeypatch: pytest.MonkeyPatch) -> None:
    from formlytics.core import auth

    def _reject(token: str) -> dict:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    monkeypatch.setattr(auth, "_decode_clerk_jwt", _reject)
    assert get_session_context(_page_request(cookies={"__session": "expired"})) is None

    monkeypatch.setattr(auth, "_decode_clerk_jwt", lambda token: {"email": "no-sub@example.com"})
    assert get_session_context(_page_request(cookies={"__session": "no-sub"})) is None


def test_session_context_is_none_when_jwks_unreachable(monkeypatch: pytest.MonkeyPatch) -> None:
    from formlytics.core import auth

    monkeypatch.setattr(auth.jwt, "get_unverified_header", lambda token: {"kid": "abc"})

    def _unreachable(url: str) -> dict:
        raise requests.ConnectionError("jwks down")

    monkeypatch.setattr(auth.jwks_cache, "get", _unreachable)
    assert get_session_context(_page_request(authorization="Bearer jwt")) is None


@pytest.mark.asyncio
async def test_require_auth_context_sets_request_state(monkeypatch: pytest.MonkeyPatch) -> None:
    from formlytics.core import auth

    monkeypatch.setattr(auth, "_decode_clerk_jwt", lambda _token: {"sub": "user_1", "email": "ada@example.com"})

    request = _page_request()
    context = await require_auth_context(request, SimpleNamespace(credentials="jwt"))

    assert context.subject == "user_1"
    assert request.state.user_subject == "user_1"
    assert request.state.auth_claims["email"] == "ada@example.com"


@pytest.mark.asyncio
async def test_require_auth_context_without_token() -> None:
    with pytest.raises(HTTPException) as exc:
        await require_auth_context(_page_request(), None)
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_require_auth_context_missing_subject(monkeypatch: pytest.MonkeyPatch) -> None:
    from formlytics.core import auth

    monkeypatch.setattr(auth, "_decode_clerk_jwt", lambda _token: {"email": "ada@example.com"})
    with pytest.raises(HTTPException) as exc:
        await require_auth_context(_page_request(), SimpleNamespace(credentials="jwt"))
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_get_current_user_returns_existing_user(db_session: AsyncSession, billing_user: User) -> None:
    user = await get_current_user(AuthContext(subject="user_1"), db_session)
    assert user.id == "user_1"
    assert user.organization_id == billing_user.organization_id


@pytest.mark.asyncio
async def test_get_current_user_provisions_user_and_organization(db_session: AsyncSession) -> None:
    context = AuthContext(subject="user_new", claims={"sub": "user_new", "email": "grace@example.com"})

    user = await get_current_user(context, db_session)

    organization = await db_session.scalar(select(Organization).where(Organization.id == user.organization_id))
    assert user.email == "grace@example.com"
    assert organization.name == "grace's Organization"
    assert organization.billing_customer_id is None


@pytest.mark.asyncio
async def test_get_current_user_requires_email_to_provision(db_session: AsyncSession) -> None:
    with pytest.raises(HTTPException) as exc:
        await get_current_user(AuthContext(subject="user_new"), db_session)
    assert exc.value.status_code == 403


def test_default_organization_name_prefers_display_name() -> None:
    assert default_organization_name("ada@example.com", "Ada Lovelace") == "Ada Lovelace's Organization"
    assert default_organization_name("ada@example.com", "  ") == "ada's Organization"
