import logging
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from blog_api import presenter
from blog_api.cache import cache
from blog_api.exceptions import JsonApiError
from blog_api.logging_config import configure_logging
from blog_api.middleware import RequestLogMiddleware
from blog_api.routers import articles, auth, categories, comments

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging()
    try:
        await cache.connect()
    except Exception as exc:
        logger.warning("Cache unavailable, serving without it: %s", exc)
    yield
    # Shutdown
    await cache.disconnect()


app = FastAPI(
    title="Blog JSON:API",
    description="JSON:API backend for articles, comments and categories",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error rendering: every failure leaves as a JSON:API errors document
# ---------------------------------------------------------------------------

@app.exception_handler(JsonApiError)
async def json_api_error_handler(request: Request, exc: JsonApiError):
    return presenter.error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Body schema failures become 422 errors pointing into the document;
    query/path parameter failures become 400 errors naming the parameter.
    """
    errors = []
    status = 422
    for error in exc.errors():
        location, *path = error["loc"]
        if location == "body":
            source = {"pointer": "/" + "/".join(str(p) for p in path)}
            entry_status = 422
        else:
            source = {"parameter": str(path[0]) if path else location}
            entry_status = status = 400
        errors.append(
            {
                "title": HTTPStatus(entry_status).phrase if entry_status == 400 else "The given data was invalid.",
                "detail": error["msg"],
                "status": str(entry_status),
                "source": source,
            }
        )
    return presenter.json_api_response(presenter.error_document(errors), status)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error = {
        "title": HTTPStatus(exc.status_code).phrase,
        "detail": str(exc.detail),
        "status": str(exc.status_code),
    }
    return presenter.json_api_response(presenter.error_document([error]), exc.status_code, exc.headers)


# Routers
app.include_router(articles.router)
app.include_router(comments.router)
app.include_router(categories.router)
app.include_router(auth.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
