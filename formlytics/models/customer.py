from __future__ import annotations

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from formlytics.models.base import EntityBase


class Customer(EntityBase):
    __tablename__ = "customers"

    customer_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), unique=True, nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
