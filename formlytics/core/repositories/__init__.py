from formlytics.core.repositories.base import Repository
from formlytics.core.repositories.customers import CustomerRepository
from formlytics.core.repositories.subscriptions import SubscriptionRepository
from formlytics.core.repositories.users import OrganizationRepository, UserRepository

__all__ = [
    "Repository",
    "CustomerRepository",
    "OrganizationRepository",
    "SubscriptionRepository",
    "UserRepository",
]
