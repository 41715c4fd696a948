from __future__ import annotations

import logging

import redis.asyncio as redis
from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from formlytics.core.config import settings
from formlytics.core.db import get_db_session
from formlytics.core.dispatcher import WebhookDispatcher
from formlytics.core.paddle import MissingSignatureError, PaddleClient, get_paddle_client
from formlytics.core.reconciliation import ReconcileResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/paddle", tags=["webhooks"])


async def _publish_subscription_state(result: ReconcileResult) -> None:
    if not result.applied or not result.user_id or not result.event_type.startswith("subscription."):
        return

    redis_client = redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
        socket_timeout=settings.redis_socket_timeout_seconds,
    )
    try:
        await redis_client.publish(
            f"{settings.billing_status_channel_prefix}:{result.user_id}",
            result.status or "",
        )
    except RedisError:
        logger.warning("Could not publish subscription status for user=%s", result.user_id)
    finally:
        await redis_client.aclose()


@router.post("/webhook")
async def paddle_webhook(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    paddle: PaddleClient = Depends(get_paddle_client),
    paddle_signature: str | None = Header(default=None, alias="Paddle-Signature"),
) -> JSONResponse:
    raw_body = await request.body()
    try:
        event = paddle.webhooks.unmarshal(
            raw_body, settings.paddle_notification_secret, paddle_signature
        )
    except MissingSignatureError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing signature from header"},
        )
    except Exception:
        logger.exception("Could not unmarshal Paddle webhook")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    try:
        result = await WebhookDispatcher(session).dispatch(event)
    except Exception:
        logger.exception("Webhook dispatch failed for event type=%s", event.event_type)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    await _publish_subscription_state(result)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": 200, "eventName": event.event_type or "Unknown event"},
    )
