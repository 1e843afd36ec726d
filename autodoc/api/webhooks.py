"""Push webhook endpoint for automatic documentation updates."""

import hashlib
import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from ..core.config import Settings, get_settings
from ..exceptions import WebhookValidationError
from ..schemas import WebhookPayload, WebhookResponse
from ..services import DocumentationService, get_documentation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documentation", tags=["webhooks"])


def _verify_github_signature(payload: bytes, signature_header: str, secret: str) -> bool:
    """
    Verify GitHub webhook HMAC-SHA256 signature.

    Args:
        payload: Raw request body bytes
        signature_header: Value of X-Hub-Signature-256 header
        secret: Webhook secret configured in GitHub

    Returns:
        True if signature is valid
    """
    if not signature_header or not signature_header.startswith("sha256="):
        return False

    expected_sig = hmac.new(
        secret.encode("utf-8"),
        payload,
        hashlib.sha256
    ).hexdigest()

    received_sig = signature_header[7:]  # Strip "sha256=" prefix
    return hmac.compare_digest(expected_sig, received_sig)


def _is_main_branch(ref: str, main_branch: str) -> bool:
    return ref == f"refs/heads/{main_branch}"


@router.post("/webhook", response_model=WebhookResponse)
async def push_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    service: DocumentationService = Depends(get_documentation_service),
):
    """
    Receive push webhooks and update documentation for every pushed commit.

    Validates the signature when WEBHOOK_SECRET is set, ignores pushes to
    branches other than GIT_MAIN_BRANCH, then runs one update task per
    commit concurrently and reports each commit's result.
    """
    body = await request.body()

    if settings.webhook_secret:
        signature = request.headers.get("X-Hub-Signature-256", "")
        if not _verify_github_signature(body, signature, settings.webhook_secret):
            logger.warning("Webhook signature verification failed")
            raise WebhookValidationError()
    else:
        logger.warning("WEBHOOK_SECRET not configured, skipping signature verification")

    try:
        payload = WebhookPayload.model_validate_json(body)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if not _is_main_branch(payload.ref, settings.git_main_branch):
        return WebhookResponse(
            success=True,
            message=f"Skipped: push to '{payload.ref}', not to {settings.git_main_branch}",
        )

    results = await run_in_threadpool(service.process_push, payload)
    return WebhookResponse(success=True, message="Webhook processed", results=results)
