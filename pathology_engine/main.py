import logging
from datetime import datetime, timezone
from http import HTTPStatus

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from pathology_engine.config import settings
from pathology_engine.routers import catalog, reports
from pathology_engine.routers.deps import get_catalog
from pathology_engine.schemas.catalog import Catalog

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Pathology Report Engine API", version="0.1.0")
logger = logging.getLogger(__name__)

allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root(catalog: Catalog = Depends(get_catalog)):
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {
            "service": "pathology-report-engine",
            "catalog": {
                "tests": len(catalog.tests),
                "panels": sum(1 for test in catalog.tests if test.test_type == "panel"),
                "units": len(catalog.units),
            },
            "endpoints": ["/api/reports/resolve", "/api/catalog/lookup"],
        },
    }


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": "pathology-report-engine",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _error_name(status_code: int) -> str:
    """CamelCase reason phrase, e.g. 404 -> "NotFound"."""
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        return "HTTPError"
    return "".join(word.capitalize() for word in phrase.replace("-", " ").split())


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "statusCode": exc.status_code,
            "message": str(exc.detail) if exc.detail else "Request failed",
            "error": _error_name(exc.status_code),
        },
    )


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    # ctx may hold exception objects, which are not JSON serializable.
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")} for err in exc.errors()]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "statusCode": 422,
            "message": "Invalid request payload",
            "error": "ValidationError",
            "details": {"errors": _validation_errors(exc)},
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(_: Request, exc: Exception):
    logger.exception("Unhandled server error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "statusCode": 500,
            "message": str(exc) or "An unexpected error occurred",
            "error": "InternalServerError",
        },
    )


app.include_router(reports.router)
app.include_router(catalog.router)


def run() -> None:
    uvicorn.run(app, host=settings.app_host, port=settings.app_port, log_level=settings.log_level.lower())
