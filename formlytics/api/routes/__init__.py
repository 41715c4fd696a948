from formlytics.api.routes.billing import router as billing_router
from formlytics.api.routes.webhooks import router as webhooks_router

__all__ = [
    "billing_router",
    "webhooks_router",
]
