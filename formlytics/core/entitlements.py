from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from formlytics.core.repositories import CustomerRepository, SubscriptionRepository
from formlytics.core.tiers import Tier, find_tier_by_price_id
from formlytics.models.subscription import Subscription
from formlytics.models.user import User

ACTIVE_STATUSES = frozenset({"active", "trialing"})


@dataclass(slots=True)
class Entitlement:
    tier: Tier
    subscription: Subscription
    is_yearly: bool

    @property
    def price(self) -> int:
        return self.tier.pricing.yearly if self.is_yearly else self.tier.pricing.monthly


def select_active_subscription(subscriptions: Iterable[Subscription]) -> Subscription | None:
    # First match in storage order; a customer holding two live
    # subscriptions gets whichever the database returns first.
    for subscription in subscriptions:
        if subscription.status in ACTIVE_STATUSES:
            return subscription
    return None


async def resolve_entitlement(session: AsyncSession, user: User) -> Entitlement | None:
    customer = await CustomerRepository(session).get_by_user_id(user.id)
    if customer is None:
        return None

    subscriptions = await SubscriptionRepository(session).list_for_customer(customer.id)
    subscription = select_active_subscription(subscriptions)
    if subscription is None:
        return None

    tier = find_tier_by_price_id(subscription.price_id)
    if tier is None:
        return None

    return Entitlement(
        tier=tier,
        subscription=subscription,
        is_yearly=tier.is_yearly_price(subscription.price_id),
    )


async def resolve_active_tier(session: AsyncSession, user: User) -> Tier | None:
    entitlement = await resolve_entitlement(session, user)
    return entitlement.tier if entitlement else None
