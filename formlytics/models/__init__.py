from formlytics.models.base import Base, EntityBase, TimestampedBase
from formlytics.models.customer import Customer
from formlytics.models.organization import Organization
from formlytics.models.subscription import Subscription
from formlytics.models.user import User

__all__ = [
    "Base",
    "EntityBase",
    "TimestampedBase",
    "Organization",
    "User",
    "Customer",
    "Subscription",
]
