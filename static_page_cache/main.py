"""
FastAPI application entry point for the static page cache.

Initializes the FastAPI app, configures logging, builds the PageCache
service from configuration and installs the caching middleware. The cache
logic itself lives in separate modules (path_resolver, writer, index,
invalidator, page_cache).
"""
import logging
from collections.abc import Awaitable, Callable, Iterable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool

from .config_loader import Config, config
from .index import CacheIndexRecorder, SqliteIndexStore
from .models import CacheSettings, RequestInfo, ResponseInfo
from .page_cache import PageCache
from .routes import router
from .writer import ArtifactWriter

# Configure logging for the application
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_page_cache(cfg: Config) -> PageCache:
    """Create a PageCache wired with the configured writer and SQLite index."""
    writer = ArtifactWriter(
        file_mode=cfg.file_mode,
        dir_mode=cfg.dir_mode,
        lock_dir=cfg.lock_dir,
        lock_timeout=cfg.lock_timeout,
        lock_buckets=cfg.lock_buckets,
    )
    recorder = CacheIndexRecorder(SqliteIndexStore(cfg.index_path))
    return PageCache(
        writer,
        recorder,
        public_path=cfg.public_path,
        sites=cfg.sites,
        long_filename_policy=cfg.long_filename_policy,
    )


def default_exclude_paths(app: FastAPI) -> set[str]:
    """Paths of the admin routes and the FastAPI docs, which are never cached."""
    paths = {route.path for route in router.routes}
    for url in (app.docs_url, app.redoc_url, app.openapi_url, app.swagger_ui_oauth2_redirect_url):
        if url:
            paths.add(url)
    return paths


def install_page_cache(
    app: FastAPI,
    page_cache: PageCache,
    settings: CacheSettings,
    *,
    exclude_paths: Iterable[str] = (),
) -> None:
    """
    Register the caching middleware on ``app``.

    Handlers can override the default settings for a single request by
    assigning a CacheSettings value to ``request.state.cache_settings``.
    Requests for ``exclude_paths``, the admin routes and the docs routes
    are passed through untouched.
    """
    app.state.page_cache = page_cache
    app.state.cache_settings = settings
    excluded = default_exclude_paths(app) | set(exclude_paths)

    @app.middleware("http")
    async def cache_static_pages(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """
        Middleware that stores successful GET responses as static files.

        Caching failures are logged and never change the response sent to
        the client.
        """
        if request.url.path in excluded:
            return await call_next(request)

        response = await call_next(request)

        request_info = RequestInfo(
            method=request.method,
            path=request.url.path,
            url=str(request.url),
        )
        content_type = response.headers.get("content-type")
        if not page_cache.should_cache(
            request_info, ResponseInfo(response.status_code, content_type, b"")
        ):
            return response

        # Buffer the body so it can be written to disk and still be sent.
        body = b"".join([chunk async for chunk in response.body_iterator])
        buffered = Response(
            content=body,
            status_code=response.status_code,
            background=response.background,
        )
        buffered.raw_headers = response.raw_headers

        request_settings = getattr(request.state, "cache_settings", None) or app.state.cache_settings
        try:
            await run_in_threadpool(
                page_cache.cache_if_needed,
                request_info,
                ResponseInfo(response.status_code, content_type, body),
                request_settings,
            )
        except Exception:  # noqa: BLE001 - caching must never break the response
            logger.exception("Failed to cache %s", request_info.path)

        return buffered


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    """
    FastAPI lifespan handler.

    Logs the effective cache configuration on start and a shutdown notice
    on exit.
    """
    logger.info("Starting static page cache")
    logger.info("Public path: %s, cache path: %s", config.public_path, config.cache_path)
    logger.info("Query whitelist: %s", config.whitelist)
    try:
        yield
    finally:
        logger.info("Shutting down static page cache")


# Initialize FastAPI application
app = FastAPI(
    title="Static Page Cache",
    version="1.0.0",
    description="Persists successful GET responses as static HTML, JSON and XML files",
    lifespan=app_lifespan,
)

# Register routes
app.include_router(router)
install_page_cache(
    app,
    build_page_cache(config),
    config.default_settings(),
    exclude_paths=config.exclude_paths,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=config.server_host,
        port=config.server_port,
        log_level="info",
    )
