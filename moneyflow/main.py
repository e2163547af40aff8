from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.database import SessionLocal
from .core.logging import configure_logging
from .errors import MoneyflowError
from .routers import register_routers
from .services.cron_service import CronService

configure_logging(settings.LOG_LEVEL)

cron_service = CronService(settings, SessionLocal)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SCHEDULER_ENABLED:
        cron_service.start()
    try:
        yield
    finally:
        cron_service.stop()


app = FastAPI(title="moneyflow", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count"],
)


@app.exception_handler(MoneyflowError)
async def moneyflow_error_handler(request: Request, exc: MoneyflowError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health")
def health():
    return {"status": "ok"}


register_routers(app)
