import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import LoanServiceError
from app.core.logging import setup_logging
from app.api.middleware import RequestLogMiddleware
from app.api.routes.customers import router as customers_router
from app.api.routes.admins import router as admins_router
from app.api.routes.users import router as users_router
from app.api.routes.audit import router as audit_router

setup_logging(settings.log_level, settings.log_format)
log = logging.getLogger(__name__)

app = FastAPI(title="Loan service")

origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(LoanServiceError)
async def loan_service_error_handler(request: Request, exc: LoanServiceError):
    log.info("request rejected: %s (%s)", exc.code, exc.reason)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
@app.get("/api/health")
def health():
    return {"status": "ok"}

app.include_router(customers_router)
app.include_router(admins_router)
app.include_router(users_router)
app.include_router(audit_router)
