from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from fastapi import HTTPException, Request, status
from paddle_billing import Client, Environment, Options
from paddle_billing.Entities.Shared import CustomData, Status
from paddle_billing.Notifications import Secret, Verifier
from paddle_billing.Resources.Customers.Operations import (
    CreateCustomer,
    ListCustomers,
    UpdateCustomer,
)

from formlytics.core.config import Settings
from formlytics.schemas.paddle import WebhookEvent

if TYPE_CHECKING:
    from paddle_billing.Entities.Customer import Customer as ProviderCustomer

SIGNATURE_HEADER = "Paddle-Signature"

_ENVIRONMENTS = {
    "sandbox": Environment.SANDBOX,
    "production": Environment.PRODUCTION,
}


class AuthenticationError(ValueError):
    pass


class MissingSignatureError(AuthenticationError):
    pass


class InvalidSignatureError(AuthenticationError):
    pass


@dataclass(slots=True)
class NotificationRequest:
    """The received notification in the shape the SDK verifier reads."""

    raw_body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    # Body attribute names the verifier looks for across frameworks.
    @property
    def body(self) -> bytes:
        return self.raw_body

    @property
    def content(self) -> bytes:
        return self.raw_body

    @property
    def data(self) -> bytes:
        return self.raw_body


class WebhookVerifier:
    """Authenticates Paddle notifications and decodes them into typed events.

    Verification runs on the bytes exactly as received. Decoding happens only
    after the SDK has accepted the signature.
    """

    def __init__(self, tolerance_seconds: int = 5) -> None:
        self.tolerance_seconds = tolerance_seconds

    def verify(self, raw_body: bytes, secret: str, signature: str) -> None:
        if not secret:
            raise InvalidSignatureError("Webhook secret is not configured")

        request = NotificationRequest(raw_body=raw_body, headers={SIGNATURE_HEADER: signature})
        try:
            verified = Verifier(self.tolerance_seconds).verify(request, Secret(secret))
        except Exception as exc:
            raise InvalidSignatureError(f"Invalid Paddle signature: {exc}") from exc

        if not verified:
            raise InvalidSignatureError("Signature does not match payload")

    def unmarshal(self, raw_body: bytes, secret: str, signature: str | None) -> WebhookEvent:
        if not signature or not raw_body:
            raise MissingSignatureError("Missing signature from header")

        self.verify(raw_body, secret, signature)
        return WebhookEvent.model_validate(json.loads(raw_body.decode("utf-8")))


class PaddleClient:
    def __init__(
        self,
        *,
        api_key: str,
        environment: str = "sandbox",
        webhooks: WebhookVerifier | None = None,
        sdk: Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.environment = environment
        self.webhooks = webhooks or WebhookVerifier()
        self._sdk = sdk

    @classmethod
    def from_settings(cls, config: Settings) -> PaddleClient:
        return cls(
            api_key=config.paddle_api_key,
            environment=config.paddle_environment,
            webhooks=WebhookVerifier(tolerance_seconds=config.paddle_webhook_tolerance_seconds),
        )

    @property
    def sdk(self) -> Client:
        if self._sdk is None:
            if not self.api_key:
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="PADDLE_API_KEY is not configured",
                )
            self._sdk = Client(self.api_key, options=Options(_ENVIRONMENTS[self.environment]))
        return self._sdk

    def find_customer_by_email(self, email: str) -> ProviderCustomer | None:
        customers = self.sdk.customers.list(
            ListCustomers(emails=[email], statuses=[Status.Active, Status.Archived])
        )
        return next(iter(customers), None)

    def get_customer(self, customer_id: str) -> ProviderCustomer:
        return self.sdk.customers.get(customer_id)

    def create_customer(
        self,
        *,
        email: str,
        name: str | None,
        custom_data: dict[str, Any],
    ) -> ProviderCustomer:
        values: dict[str, Any] = {"email": email, "custom_data": CustomData(custom_data)}
        if name:
            values["name"] = name
        return self.sdk.customers.create(CreateCustomer(**values))

    def reactivate_customer(self, customer_id: str) -> ProviderCustomer:
        return self.sdk.customers.update(customer_id, UpdateCustomer(status=Status.Active))


def get_paddle_client(request: Request) -> PaddleClient:
    return request.app.state.paddle
