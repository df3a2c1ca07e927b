# Ledgerline backend entrypoint: thin FastAPI gateway over the billing services.

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.api import ai
from backend.app.api import customers
from backend.app.api import dashboard
from backend.app.api import invoices
from backend.app.api import payments
from backend.app.api import rates
from backend.app.api import recurring
from backend.app.api import users
from backend.app.core.dev_seed import ensure_default_dev_owner, ensure_schema
from backend.app.core.errors import LedgerError
from backend.app.core.logging import configure_logging
from backend.app.core.settings import get_settings
from backend.app.db.session import SessionLocal

configure_logging()
logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name, version=settings.api_version)

origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


app.include_router(users.router)
app.include_router(customers.router)
app.include_router(invoices.router)
app.include_router(payments.router)
app.include_router(recurring.router)
app.include_router(dashboard.router)
app.include_router(rates.router)
app.include_router(ai.router)


@app.get("/")
def read_root():
    return {"app": "Ledgerline backend", "status": "ok"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.on_event("startup")
def prepare_database():
    ensure_schema()
    db = SessionLocal()
    try:
        ensure_default_dev_owner(db)
    finally:
        db.close()
