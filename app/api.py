import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.routes import account, auth, flex, history, locations, search_settings
from core.storage import get_storage

# Ensure .env values are loaded even if uvicorn is launched without `dotenv run`.
load_dotenv(override=True)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_storage().init()
    yield


app = FastAPI(lifespan=lifespan)


app.include_router(auth.router)
app.include_router(account.router)
app.include_router(locations.router)
app.include_router(search_settings.router)
app.include_router(history.router)
app.include_router(flex.router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.exception_handler(RequestValidationError)
async def invalid_input(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"message": "Invalid input", "errors": jsonable_encoder(exc.errors())},
        status_code=400,
    )


@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception):
    log.exception("Unhandled error", extra={"path": request.url.path})
    return JSONResponse({"message": "Internal server error"}, status_code=500)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault(
        "Content-Security-Policy",
        "default-src 'self'; img-src 'self' data:; style-src 'self' 'unsafe-inline'; script-src 'self'; "
        "font-src 'self' data:; connect-src 'self';",
    )
    return response
