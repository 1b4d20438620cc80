"""
Newsletter publishing endpoint.

- POST /newsletters - Basic-auth protected; sends one issue to every
  confirmed subscriber
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, Field

from src.adapters.auth.crypto import Argon2PasswordHasher, HashingWorkerPool
from src.adapters.sqlite_db import SQLiteSubscriptionRepo, SQLiteUserRepo
from src.api.auth_utils import basic_authentication
from src.api.deps import (
    get_confirmed_subscribers,
    get_email_gateway,
    get_hasher,
    get_hashing_pool,
    get_user_repo,
)
from src.api.errors import publish_error_response, publish_unauthorized_response
from src.components.publish import PublishInput, run_publish
from src.core.errors import ValidationError
from src.core.ports.email import EmailGatewayPort

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Request Models ---


class NewsletterContent(BaseModel):
    html: str = Field(..., description="HTML body")
    text: str = Field(..., description="Plain-text body")


class NewsletterRequest(BaseModel):
    title: str = Field(..., description="Subject line of the issue")
    content: NewsletterContent


@router.post(
    "/newsletters",
    summary="Publish a newsletter issue",
    responses={
        401: {"description": "Missing or invalid Basic credentials"},
        500: {"description": "Storage failure or delivery aborted"},
    },
)
async def publish_newsletter(
    body: NewsletterRequest,
    request: Request,
    subscribers: SQLiteSubscriptionRepo = Depends(get_confirmed_subscribers),
    email_gateway: EmailGatewayPort = Depends(get_email_gateway),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    hasher: Argon2PasswordHasher = Depends(get_hasher),
    hashing_pool: HashingWorkerPool = Depends(get_hashing_pool),
) -> Response:
    try:
        credentials = basic_authentication(request.headers)
    except ValidationError as e:
        logger.info("Rejected publish request: %s", e.message)
        return publish_unauthorized_response()

    result = await run_publish(
        PublishInput(
            title=body.title,
            html=body.content.html,
            text=body.content.text,
            credentials=credentials,
        ),
        subscribers=subscribers,
        email_gateway=email_gateway,
        user_repo=user_repo,
        hasher=hasher,
        hashing_pool=hashing_pool,
    )
    if result.error is not None:
        return publish_error_response(result.error)
    return Response(status_code=status.HTTP_200_OK)
