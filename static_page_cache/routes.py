"""
FastAPI route handlers for page cache administration.

Thin handlers that delegate invalidation to the PageCache service stored
on the application state. Handles HTTP-specific concerns like status codes
and error responses.
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from .exceptions import ConfigurationError
from .models import ClearRequest, ForgetRequest, InvalidationResponse
from .page_cache import PageCache

# Initialize logger for routes
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter()


def _page_cache(request: Request) -> PageCache:
    return request.app.state.page_cache


@router.post("/cache/forget")
async def forget(payload: ForgetRequest, request: Request) -> InvalidationResponse:
    """
    Remove the cached html/json/xml artifacts of a single slug.

    Args:
        payload: ForgetRequest with the slug and optional locale

    Returns:
        InvalidationResponse telling whether any file was removed

    Raises:
        HTTPException: When the cache path is not configured
    """
    page_cache = _page_cache(request)
    settings = request.app.state.cache_settings.with_locale(
        payload.locale or request.app.state.cache_settings.locale
    )
    try:
        deleted = page_cache.forget(payload.slug, settings)
    except ConfigurationError as exc:
        logger.error("Cannot forget %s: %s", payload.slug, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return InvalidationResponse(deleted=deleted, target=payload.slug)


@router.post("/cache/clear")
async def clear(payload: ClearRequest, request: Request) -> InvalidationResponse:
    """
    Delete the whole cache tree or one of its subdirectories.

    Args:
        payload: ClearRequest with optional subdirectory, locale and preserve flag

    Returns:
        InvalidationResponse telling whether the directory was deleted

    Raises:
        HTTPException: When the cache path is not configured
    """
    page_cache = _page_cache(request)
    settings = request.app.state.cache_settings.with_locale(
        payload.locale or request.app.state.cache_settings.locale
    )
    try:
        deleted = page_cache.clear(settings, payload.path, preserve=payload.preserve)
    except ConfigurationError as exc:
        logger.error("Cannot clear cache: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return InvalidationResponse(deleted=deleted, target=payload.path or "/")


@router.get("/health")
async def health() -> dict[str, str]:
    """
    Health check endpoint.

    Returns:
        Dictionary with status and service name
    """
    return {"status": "ok", "service": "static-page-cache"}
