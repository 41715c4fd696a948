from __future__ import annotations

from uuid import UUID

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from formlytics.models.base import EntityBase


class Subscription(EntityBase):
    __tablename__ = "subscriptions"

    subscription_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    price_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    product_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    scheduled_change: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    customer_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False, index=True)
