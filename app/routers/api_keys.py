# =============================================================================
# app/routers/api_keys.py - Provider API Key Endpoints
# =============================================================================
# Users can store their own fal.ai key to generate without spending credits.
# Keys are verified against the provider before being marked valid and are
# only ever returned masked.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Path

from app.dependencies import CurrentUser
from core.models.account import (
    ApiKeySaveRequest,
    ApiKeyVerifyRequest,
    ApiKeyVerifyResponse,
    StoredApiKey,
)
from core.services.api_key_service import ApiKeyService

router = APIRouter()

ProviderPath = Annotated[str, Path(description="Provider: fal or openai")]


@router.post("/verify", response_model=ApiKeyVerifyResponse, response_model_exclude_none=True)
def verify_api_key(request: ApiKeyVerifyRequest, user: CurrentUser):
    """Check a key against its provider without storing it."""
    return ApiKeyService.verify_key(request.provider, request.api_key)


@router.get("", response_model=list[StoredApiKey])
def list_api_keys(user: CurrentUser):
    """List the current user's stored keys (masked)."""
    return ApiKeyService.list_keys(user.id)


@router.put("/{provider}", response_model=ApiKeyVerifyResponse, response_model_exclude_none=True)
def save_api_key(provider: ProviderPath, request: ApiKeySaveRequest, user: CurrentUser):
    """
    Verify and store a key for a provider, replacing any previous one.

    Invalid keys are stored with is_valid=false and are never used.
    """
    return ApiKeyService.save_key(user.id, provider, request.api_key)


@router.delete("/{provider}")
def delete_api_key(provider: ProviderPath, user: CurrentUser):
    """Remove the stored key for a provider."""
    ApiKeyService.delete_key(user.id, provider)
    return {"provider": provider, "message": "API key deleted"}
