from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

SIGN_IN_PATH = "/login"
PLAN_SELECTION_PATH = "/plans"
AUTHENTICATED_HOME_PATH = "/dashboard"


@dataclass(frozen=True, slots=True)
class RouteTable:
    protected: tuple[str, ...] = ("/dashboard", "/plans", "/success")
    auth_only: tuple[str, ...] = ("/login", "/signup")
    subscription_required: tuple[str, ...] = ("/dashboard",)
    not_subscribed_required: tuple[str, ...] = ("/plans",)

    def is_gated(self, path: str) -> bool:
        return matches_route(path, self.protected) or matches_route(path, self.auth_only)


ROUTES = RouteTable()


class AccessState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED_NO_ENTITLEMENT = "authenticated_no_entitlement"
    AUTHENTICATED_ENTITLED = "authenticated_entitled"


@dataclass(frozen=True, slots=True)
class AccessDecision:
    state: AccessState
    redirect_to: str | None = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None


def matches_route(path: str, routes: tuple[str, ...]) -> bool:
    return any(path == route or path.startswith(f"{route}/") for route in routes)


def access_state(has_session: bool, has_entitlement: bool) -> AccessState:
    if not has_session:
        return AccessState.ANONYMOUS
    if has_entitlement:
        return AccessState.AUTHENTICATED_ENTITLED
    return AccessState.AUTHENTICATED_NO_ENTITLEMENT


def evaluate_access(
    path: str,
    *,
    has_session: bool,
    has_entitlement: bool,
    routes: RouteTable = ROUTES,
) -> AccessDecision:
    """Decide whether a request may reach its handler.

    Rules are checked in order: sign-in for protected pages, plan selection
    for pages that need a subscription, away from the plan page once
    subscribed, and away from sign-in/sign-up pages once signed in.
    """
    state = access_state(has_session, has_entitlement)

    if matches_route(path, routes.protected):
        if state is AccessState.ANONYMOUS:
            return AccessDecision(state, SIGN_IN_PATH)
        if matches_route(path, routes.subscription_required) and not has_entitlement:
            return AccessDecision(state, PLAN_SELECTION_PATH)
        if matches_route(path, routes.not_subscribed_required) and has_entitlement:
            return AccessDecision(state, AUTHENTICATED_HOME_PATH)

    if matches_route(path, routes.auth_only) and has_session:
        target = AUTHENTICATED_HOME_PATH if has_entitlement else PLAN_SELECTION_PATH
        return AccessDecision(state, target)

    return AccessDecision(state)
