from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from formlytics.core.repositories.base import Repository
from formlytics.models.subscription import Subscription


class SubscriptionRepository(Repository[Subscription]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=Subscription)

    async def get_by_subscription_id(self, subscription_id: str) -> Subscription | None:
        return await self.get_by(subscription_id=subscription_id)

    async def list_for_customer(self, customer_id: UUID) -> list[Subscription]:
        # No ORDER BY: callers see rows in storage order.
        result = await self.session.execute(
            select(Subscription).where(Subscription.customer_id == customer_id)
        )
        return list(result.scalars().all())
