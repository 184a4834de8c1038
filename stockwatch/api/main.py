from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from stockwatch.api.routes_alerts import router as alerts_router
from stockwatch.api.routes_health import router as health_router
from stockwatch.api.routes_metrics import router as metrics_router
from stockwatch.core.cache import build_summary_cache
from stockwatch.core.config import settings
from stockwatch.core.errors import register_error_handlers
from stockwatch.core.logger import init_logging


def create_app() -> FastAPI:
    init_logging()

    # Interactive docs stay off in production
    is_production = settings.ENV.lower() == "prod"
    app = FastAPI(
        title=settings.APP_NAME,
        debug=False,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
    )
    app.state.summary_cache = build_summary_cache()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )
    register_error_handlers(app)
    app.include_router(alerts_router, prefix="/stock-alerts", tags=["stock-alerts"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(health_router)

    return app


app = create_app()
