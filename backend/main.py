from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from typing import Optional
import logging
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.core.config import Settings, settings as default_settings
from app.core.errors import AppError, ConsistencyViolation
from app.core.logging import setup_logging
from app.core.rate_limit import limiter
from app.api.endpoints import auth, goals, llm
from app.services.ai_service import AIService
from app.services.store import GoalStore, create_store

logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.store is None:
        app.state.store = await create_store(app.state.settings)
    logger.info("🚀 %s started (%s)", app.state.settings.PROJECT_NAME, type(app.state.store).__name__)
    yield
    await app.state.store.close()
    logger.info("Store closed")


def create_app(settings: Optional[Settings] = None, store: Optional[GoalStore] = None,
               ai_service: Optional[AIService] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.ai_service = ai_service or AIService(settings)

    limiter.enabled = settings.RATE_LIMIT_ENABLED
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if isinstance(exc, ConsistencyViolation):
            logger.error("🔥 CONSISTENCY VIOLATION: %s | Path: %s", exc.message, request.url.path)
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            field = error.get("loc", [])[-1]
            msg = error.get("msg", "Invalid value")
            errors.append(f"{field}: {msg}")

        return JSONResponse(
            status_code=422,
            content={"success": False, "detail": "Validation Error", "errors": errors}
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"🔥 CRITICAL ERROR: {str(exc)} | Path: {request.url}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "An internal server error occurred. Please try again later."}
        )

    @app.get("/health")
    async def health_check():
        return {"status": "OK", "service": settings.PROJECT_NAME}

    app.include_router(auth.router, prefix=settings.API_PREFIX)
    app.include_router(goals.router, prefix=settings.API_PREFIX)
    app.include_router(llm.router, prefix=settings.API_PREFIX)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
