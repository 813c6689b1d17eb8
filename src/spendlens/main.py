"""SpendLens cost analytics service entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from spendlens.adapters.csv_source import CsvBillingSource
from spendlens.adapters.demo_data import DEMO_PROFILES, DemoBillingSource
from spendlens.adapters.notifications import WebhookNotificationSender
from spendlens.adapters.status_store import InMemoryStatusStore
from spendlens.api.router import router
from spendlens.core.interfaces import NotificationSender
from spendlens.core.services import (
    ANOMALY_STATUSES,
    RECOMMENDATION_STATUSES,
    BudgetAlertService,
    CostAnalyticsService,
)
from spendlens.errors import DataSourceError, NotFoundError, SpendLensError
from spendlens.observability import configure_logging
from spendlens.settings import Settings

logger = structlog.get_logger(__name__)


def build_analytics_service(settings: Settings) -> CostAnalyticsService:
    """Wire the analytics façade to the configured billing data source.

    Raises:
        DataSourceError: If the csv source is selected without a path, or the
            data source name is unknown.
    """
    anomaly_statuses = InMemoryStatusStore("anomaly", ANOMALY_STATUSES)
    recommendation_statuses = InMemoryStatusStore("recommendation", RECOMMENDATION_STATUSES)

    if settings.data_source == "csv":
        if not settings.csv_path:
            raise DataSourceError("SPENDLENS_CSV_PATH is required when data_source is 'csv'")
        return CostAnalyticsService(
            source=CsvBillingSource(settings.csv_path),
            settings=settings,
            anomaly_statuses=anomaly_statuses,
            recommendation_statuses=recommendation_statuses,
        )

    if settings.data_source != "demo":
        raise DataSourceError(f"Unknown data source: {settings.data_source}")

    def demo_source(profile: str) -> DemoBillingSource:
        return DemoBillingSource(profile=profile, days=settings.demo_days, seed=settings.demo_seed)

    return CostAnalyticsService(
        source=demo_source(settings.demo_profile),
        settings=settings,
        anomaly_statuses=anomaly_statuses,
        recommendation_statuses=recommendation_statuses,
        source_factory=demo_source,
        profiles=DEMO_PROFILES,
        profile=settings.demo_profile,
    )


def create_app(
    settings: Settings | None = None,
    analytics: CostAnalyticsService | None = None,
    sender: NotificationSender | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Service settings (read from the environment when None).
        analytics: Pre-built analytics service; built from settings when None.
        sender: Budget alert transport; the webhook sender when None.

    Returns:
        The configured application.
    """
    settings = settings or Settings()
    configure_logging(settings)

    analytics = analytics or build_analytics_service(settings)
    sender = sender or WebhookNotificationSender(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage application startup and shutdown lifecycle."""
        logger.info(
            "spendlens starting",
            service=settings.service_name,
            data_source=settings.data_source,
            profile=analytics.profile,
            notifications_enabled=settings.notifications_enabled,
        )
        yield
        logger.info("spendlens shutting down")

    app = FastAPI(title="SpendLens", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.analytics = analytics
    app.state.budget_alerts = BudgetAlertService(analytics, sender)

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(DataSourceError)
    async def _data_source_error(request: Request, exc: DataSourceError) -> JSONResponse:
        logger.error("data_source_error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(SpendLensError)
    async def _spendlens_error(request: Request, exc: SpendLensError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def _value_error(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": settings.service_name}

    app.include_router(router, prefix="/api/v1")
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    settings = Settings()
    uvicorn.run("spendlens.main:app", host=settings.host, port=settings.port, log_config=None)
