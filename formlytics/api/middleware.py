from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from fastapi import Request
from starlette import status
from starlette.responses import RedirectResponse, Response

from formlytics.core.access import ROUTES, evaluate_access
from formlytics.core.auth import get_session_context
from formlytics.core.db import AsyncSessionLocal
from formlytics.core.entitlements import resolve_active_tier
from formlytics.core.repositories import UserRepository


async def _has_entitlement(subject: str) -> bool:
    # Fresh session per request: webhooks can change entitlement at any time.
    async with AsyncSessionLocal() as session:
        user = await UserRepository(session).get(subject)
        if user is None:
            return False
        return await resolve_active_tier(session, user) is not None


async def access_gate_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    path = request.url.path
    if not ROUTES.is_gated(path):
        return await call_next(request)

    # Token checks may fetch signing keys over HTTP.
    context = await asyncio.to_thread(get_session_context, request)
    entitled = await _has_entitlement(context.subject) if context is not None else False

    decision = evaluate_access(path, has_session=context is not None, has_entitlement=entitled)
    if decision.redirect_to is not None:
        return RedirectResponse(
            url=decision.redirect_to,
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        )

    request.state.access_state = decision.state
    return await call_next(request)
