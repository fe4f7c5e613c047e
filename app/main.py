"""FastAPI application exposing the restaurant management API."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes.admin import router as admin_router
from app.api.routes.analytics import router as analytics_router
from app.api.routes.dashboard import router as dashboard_router
from app.api.routes.menu import router as menu_router
from app.api.routes.staff import router as staff_router
from app.config.settings import ADMIN_SECRET, LOG_LEVEL, NOTIFICATION_WEBHOOK_URL
from app.config.supabase_client import supabase_configured
from app.schemas import HealthResponse
from app.services.errors import ServiceError

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Restaurant Manager")
logger = logging.getLogger(__name__)

# Include Routers
app.include_router(menu_router)
app.include_router(dashboard_router, prefix="/api/dashboard", tags=["Dashboard"])
app.include_router(analytics_router)
app.include_router(staff_router)
app.include_router(admin_router)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.warning(
        exc.detail,
        extra={
            "status": exc.status_code,
            "route": request.url.path,
            "error": type(exc).__name__,
        },
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        checks={
            "supabase": "configured" if supabase_configured() else "missing",
            "notifications": "configured" if NOTIFICATION_WEBHOOK_URL else "disabled",
            "admin": "configured" if ADMIN_SECRET else "disabled",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="127.0.0.1", port=8000, reload=True)
