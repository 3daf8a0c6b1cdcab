from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import health
from app.core.config import settings
from app.core.logging import configure_logging, get_logger
from app.core.monitoring import configure_error_monitoring
from app.core.observability import configure_observability
from app.domains.equipment.router import router as equipment_router
from app.domains.line_items.router import router as line_items_router
from app.domains.reports.router import router as reports_router
from app.domains.timers.router import router as timers_router
from app.domains.work_orders.router import router as work_orders_router
from app.domains.workers.router import router as workers_router
from jobcost.errors import AlreadyClosedError, ConflictError, InvalidInput, JobCostError, NotFound

configure_logging(settings.log_level)
configure_observability()
configure_error_monitoring()
logger = get_logger(__name__)

# StaleWriteError is a ConflictError
ERROR_STATUS = (
    (NotFound, 404),
    (ConflictError, 409),
    (AlreadyClosedError, 409),
    (InvalidInput, 422),
)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(workers_router)
app.include_router(equipment_router)
app.include_router(timers_router)
app.include_router(work_orders_router)
app.include_router(line_items_router)
app.include_router(reports_router)


def status_for(exc: JobCostError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


@app.exception_handler(JobCostError)
async def jobcost_error_handler(request: Request, exc: JobCostError) -> JSONResponse:
    status_code = status_for(exc)
    logger.info("request_rejected", path=request.url.path, code=exc.code, status_code=status_code)
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "code": exc.code})


@app.on_event("startup")
def startup_event() -> None:
    logger.info("startup_complete", env=settings.env)


@app.get("/")
def root() -> dict[str, str]:
    return {"message": "Job costing API running", "environment": settings.env}
