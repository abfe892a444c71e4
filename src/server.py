"""Cloud Run用HTTPサーバー（FastAPI）"""
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .features.geocoding.api.router import router as geolocation_router
from .features.search.api.router import router as search_router
from .infrastructure.config.settings import Settings
from .infrastructure.container import ServiceContainer
from .shared.exceptions.errors import (
    ConfigurationError,
    SearchIndexError,
    UpstreamUnavailableError,
    ValidationError,
)
from .shared.logging.config import get_logger, setup_logging

logger = get_logger(__name__)

SERVICE_NAME = "物件検索・位置情報サービス"
SERVICE_VERSION = "1.0.0"


def register_exception_handlers(app: FastAPI) -> None:
    """ドメイン例外をHTTPステータスに対応付ける"""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info(f"Rejected request {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "message": str(exc)},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info(f"Invalid request {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Invalid request",
                "detail": jsonable_errors(exc),
            },
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        logger.error(f"Misconfiguration while handling {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "misconfiguration", "message": str(exc)},
        )

    @app.exception_handler(UpstreamUnavailableError)
    async def upstream_error_handler(
        request: Request, exc: UpstreamUnavailableError
    ) -> JSONResponse:
        logger.error(f"Upstream unavailable while handling {request.url.path}: {exc}")
        return JSONResponse(
            status_code=503,
            content={
                "error": "upstream_unavailable",
                "message": str(exc),
                "retryable": True,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """グローバル例外ハンドラー"""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error", "detail": str(exc)},
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """pydanticのエラー詳細からJSONにできる項目だけを取り出す"""
    return [
        {
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """
    FastAPIアプリケーションを作成

    Args:
        settings: アプリケーション設定（省略時は環境変数から読み込み）
        container: サービスコンテナ（省略時は設定から生成）

    Returns:
        FastAPI: アプリケーション
    """
    settings = settings or (container.settings if container else Settings())

    setup_logging(
        level=settings.log_level,
        enable_cloud_logging=settings.gcp_logging_enabled,
        project_id=settings.gcp_project_id,
        service_name=settings.project_name,
    )

    app = FastAPI(
        title=SERVICE_NAME,
        description="物件の全文・地理検索と、住所のジオコーディングを提供するサービス",
        version=SERVICE_VERSION,
    )
    app.state.container = container or ServiceContainer(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept-Language"],
    )

    register_exception_handlers(app)
    app.include_router(search_router)
    app.include_router(geolocation_router)

    @app.on_event("startup")
    async def startup_event() -> None:
        """起動時の処理"""
        logger.info("Application starting up")
        logger.info(f"Environment: {settings.environment}")
        logger.info(f"Geocoding provider: {app.state.container.geocoding_service.provider_name}")

        if settings.meilisearch_init_on_startup:
            try:
                app.state.container.search_index.initialize_index()
            except SearchIndexError as e:
                # 検索が使えなくても位置情報APIは提供する（/search/healthで確認できる）
                logger.error(f"Search index initialization failed: {e}")

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        """シャットダウン時の処理"""
        logger.info("Application shutting down")
        app.state.container.close()

    @app.get("/")
    async def root() -> dict[str, Any]:
        """ルートエンドポイント"""
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "status": "running",
            "environment": settings.environment,
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        """ヘルスチェックエンドポイント"""
        return {"status": "healthy"}

    return app
