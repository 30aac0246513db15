import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from drive_api.config import settings
from drive_api.core.errors import DriveError
from drive_api.database import create_tables
from drive_api.routes.files import router as file_router
from drive_api.routes.folders import router as folder_router
from drive_api.routes.search import router as search_router
from drive_api.routes.shares import router as share_router
from drive_api.routes.trash import router as trash_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    yield


app = FastAPI(title="Drive API", lifespan=lifespan)

app.include_router(folder_router, prefix="/api")
app.include_router(file_router, prefix="/api")
app.include_router(search_router, prefix="/api")
app.include_router(share_router, prefix="/api")
app.include_router(trash_router, prefix="/api")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(DriveError)
async def drive_error_handler(request: Request, exc: DriveError):
    if exc.status_code >= 500:
        log.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _error(exc.status_code, exc.message)


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return _error(status.HTTP_400_BAD_REQUEST, "; ".join(messages) or "Invalid request")


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    log.exception(f"{request.method} {request.url.path} database error")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc.__class__.__name__))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    log.exception(f"{request.method} {request.url.path} unexpected error")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


@app.get("/")
async def root():
    return {"message": "Drive API Ready"}
