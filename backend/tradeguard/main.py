import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tradeguard.api.routes.security_pin import router as security_pin_router
from tradeguard.api.routes.security_settings import router as security_settings_router
from tradeguard.api.routes.two_factor import router as two_factor_router
from tradeguard.core.errors import LockedOutError, RandomSourceUnavailableError
from tradeguard.core.logging_config import configure_logging
from tradeguard.db.init_db import init_db
from tradeguard.schemas.twofa import LockedOutResponse

logger = logging.getLogger(__name__)

app = FastAPI(title="TradeGuard security actions", version="0.1.0")

app.include_router(two_factor_router)
app.include_router(security_pin_router)
app.include_router(security_settings_router)


@app.exception_handler(LockedOutError)
async def _locked_out(request: Request, exc: LockedOutError):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=LockedOutResponse(error=exc.message).model_dump(),
    )


@app.exception_handler(RandomSourceUnavailableError)
async def _random_source_unavailable(request: Request, exc: RandomSourceUnavailableError):
    logger.error("Security action aborted: %s", exc.message)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": exc.message},
    )


@app.on_event("startup")
def _startup() -> None:
    configure_logging()
    init_db()


@app.get("/health")
def health():
    return {"status": "ok"}
