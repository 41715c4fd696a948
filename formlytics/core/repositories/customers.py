from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from formlytics.core.repositories.base import Repository
from formlytics.models.customer import Customer


class CustomerRepository(Repository[Customer]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=Customer)

    async def get_by_customer_id(self, customer_id: str) -> Customer | None:
        return await self.get_by(customer_id=customer_id)

    async def get_by_user_id(self, user_id: str) -> Customer | None:
        return await self.get_by(user_id=user_id)
