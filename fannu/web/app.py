"""
FanNu Web Application
Creator pages, fan checkout, bookings and the JSON API
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import (
    http_exception_handler,
    request_validation_exception_handler,
)
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..actions import NOT_FOUND, VALIDATION_ERROR
from ..config import settings
from ..database import init_db, is_initialized
from ..logging_setup import setup_logging
from .routes import public_router, creator_router, admin_router, api_router
from .routes.api import error_response
from .templating import templates

logger = logging.getLogger(__name__)

HTML_ERROR_PAGES = {404: "not_found.html", 401: "error.html", 403: "error.html"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if not is_initialized():
        init_db(settings.database_url)
    logger.info("FanNu %s started (%s)", __version__, settings.environment)
    yield


# Initialize FastAPI app
app = FastAPI(
    title="FanNu",
    description="Drops, VIP lists, broadcasts and bookings for creators",
    version=__version__,
    lifespan=lifespan,
)


def _is_api(request: Request) -> bool:
    return request.url.path.startswith("/api")


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    if _is_api(request):
        code = NOT_FOUND if exc.status_code == 404 else f"HTTP_{exc.status_code}"
        return error_response(exc.status_code, code, str(exc.detail))

    page = HTML_ERROR_PAGES.get(exc.status_code)
    if page is None:
        return await http_exception_handler(request, exc)
    return templates.TemplateResponse(request, page, {
        "title": "Not found - FanNu" if exc.status_code == 404 else "FanNu",
        "status_code": exc.status_code,
        "message": exc.detail,
    }, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    if _is_api(request):
        return error_response(400, VALIDATION_ERROR, "Invalid request", {"errors": jsonable_encoder(exc.errors())})
    return await request_validation_exception_handler(request, exc)


app.include_router(public_router)
app.include_router(creator_router)
app.include_router(admin_router)
app.include_router(api_router)


# ==================== Run Server ====================

def run_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the web server"""
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
