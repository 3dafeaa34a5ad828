import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .database import Database
from .errors import ContentFlowError, StoreError
from .llm_client import PROVIDER, LLMClient
from .routers import content, generations, niches, outlines, pillars, subpillars, workflow
from .services.steps import WorkflowSettingsService
from .settings.config import Settings, settings as default_settings
from .store import SqlEntityStore

logger = logging.getLogger(__name__)

_HTTP_ERROR_NAMES = {
    400: "Validation Error",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
}


def _error_body(error: str, message: str, detail: Optional[str] = None) -> dict:
    body = {"error": error, "message": message}
    if detail is not None:
        body["detail"] = detail
    return body


async def register_default_llm(database: Database, settings: Settings) -> None:
    async with database.session() as session:
        await SqlEntityStore(session).upsert_llm(
            settings.OLLAMA_MODEL,
            name=settings.OLLAMA_MODEL,
            model_id=settings.OLLAMA_MODEL,
            provider=PROVIDER,
        )
    logger.info("Registered LLM %s", settings.OLLAMA_MODEL)


async def register_workflow_steps(database: Database, settings: Settings) -> None:
    async with database.session() as session:
        await WorkflowSettingsService(SqlEntityStore(session)).register_default_steps(
            settings.OLLAMA_MODEL,
            temperature=settings.DEFAULT_TEMPERATURE,
            max_tokens=settings.DEFAULT_MAX_TOKENS,
        )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    llm_client=None,
) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db: Database = app.state.database
        if settings.RUN_DB_CREATE_ALL:
            logger.info("RUN_DB_CREATE_ALL set; creating tables")
            await db.create_all()
        await register_default_llm(db, settings)
        await register_workflow_steps(db, settings)
        try:
            yield
        finally:
            await db.dispose()

    app = FastAPI(title="ContentFlow", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database or Database(settings.DATABASE_URL)
    app.state.llm_client = llm_client or LLMClient.from_settings(settings)

    # Enable CORS if needed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Update for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ----------------------
    # Error envelopes
    # ----------------------
    @app.exception_handler(ContentFlowError)
    async def _contentflow_error_handler(request: Request, exc: ContentFlowError):
        detail = None
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
            if not settings.is_production:
                detail = exc.message
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error, exc.client_message, detail),
        )

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg", "Invalid request"))
        return JSONResponse(status_code=400, content=_error_body("Validation Error", message))

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(_HTTP_ERROR_NAMES.get(exc.status_code, "Error"), str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unhandled_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                StoreError.error,
                StoreError.public_message,
                None if settings.is_production else str(exc),
            ),
        )

    # ----------------------
    # Route Includes
    # ----------------------
    for module in (niches, pillars, subpillars, outlines, content, generations, workflow):
        app.include_router(module.router)

    @app.get("/health", tags=["health"])
    async def health():
        return {"data": {"status": "ok", "environment": settings.ENVIRONMENT}}

    return app


app = create_app()
