from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from formlytics.core.repositories.base import Repository
from formlytics.models.organization import Organization
from formlytics.models.user import User


class UserRepository(Repository[User]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=User)


class OrganizationRepository(Repository[Organization]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=Organization)
