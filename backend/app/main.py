import logging
import logging.config

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.metrics import router as metrics_router
from app.api.routes import router as api_router
from app.api.ws import router as ws_router
from app.config import get_settings
from app.services.realtime import shutdown_realtime, startup_realtime
from inkwell.realtime import PersistenceFailure


def build_logging_config(debug: bool) -> dict:
    level = "DEBUG" if debug else "INFO"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
            }
        },
        "root": {
            "handlers": ["default"],
            "level": "INFO",
        },
        "loggers": {
            # Connection churn and dropped envelopes are logged here.
            "inkwell.realtime": {
                "handlers": ["default"],
                "level": level,
                "propagate": False,
            },
            "app.api.ws": {
                "handlers": ["default"],
                "level": level,
                "propagate": False,
            },
        },
    }


settings = get_settings()

logging.config.dictConfig(build_logging_config(settings.debug))

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin).rstrip("/") for origin in settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PersistenceFailure)
async def persistence_failure_handler(request: Request, exc: PersistenceFailure) -> JSONResponse:
    logger.error("%s %s failed to persist: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Failed to create notification"},
    )


@app.get("/health", tags=["system"])
def health_check() -> dict[str, str]:
    """Liveness endpoint for load balancers."""
    return {"status": "ok", "environment": settings.environment}


@app.on_event("startup")
async def _startup() -> None:
    await startup_realtime()


@app.on_event("shutdown")
async def _shutdown() -> None:
    await shutdown_realtime()


app.include_router(api_router, prefix="/api")
app.include_router(ws_router)
app.include_router(metrics_router)
