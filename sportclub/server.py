"""
Sports club management - Server FastAPI

Stagioni, squadre, atleti, quote, eventi, messaggi, uscite e bilancio.
Sorgente dati: Supabase
"""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException

from database.supabase_client import get_admin_client
from scheduler import FeeStatusScheduler
from sportclub.config import app_config, scheduler_config
from sportclub.errors import ClubError
from sportclub.fees import fees_router, MembershipFeeService
from sportclub.events import events_router
from sportclub.athletes import athletes_router
from sportclub.balance import balance_router
from sportclub.messages import messages_router
from sportclub.payments import payments_router
from sportclub.athlete import athlete_router


app = FastAPI(
    title="Sport Club Manager",
    description="Gestione società sportiva: quote, rate, eventi, messaggi, bilancio",
    version="1.0.0"
)

app.include_router(fees_router, prefix="/api")
app.include_router(events_router, prefix="/api")
app.include_router(athletes_router, prefix="/api")
app.include_router(balance_router, prefix="/api")
app.include_router(messages_router, prefix="/api")
app.include_router(payments_router, prefix="/api")
app.include_router(athlete_router, prefix="/api")

_scheduler: Optional[FeeStatusScheduler] = None


# ==================== Gestione errori ====================

@app.exception_handler(ClubError)
async def club_error_handler(request: Request, exc: ClubError):
    body = {"error": exc.message}
    if exc.debug and not app_config.is_production:
        body["debug"] = exc.debug
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.debug(f"Richiesta non valida {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Parametri mancanti o non validi"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Errore non gestito {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Errore interno del server"})


# ==================== Ciclo di vita ====================

async def run_status_recalculation():
    service = MembershipFeeService(get_admin_client())
    return await service.recalculate_statuses()


@app.on_event("startup")
async def startup_event():
    global _scheduler
    logger.info(f"Avvio server ({app_config.environment})")
    if scheduler_config.recalc_enabled:
        _scheduler = FeeStatusScheduler(recalc_func=run_status_recalculation)
        _scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    global _scheduler
    if _scheduler:
        _scheduler.stop()
        _scheduler = None


@app.get("/health")
async def health_check():
    return {
        "status": "ok",
        "environment": app_config.environment,
        "scheduler": _scheduler.get_status() if _scheduler else None
    }
