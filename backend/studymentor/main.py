"""Main FastAPI application for the StudyMentor backend."""
from fastapi import FastAPI, Request

from studymentor.api.routes.daily_plan import router as daily_plan_router
from studymentor.api.routes.suggestions import router as suggestions_router
from studymentor.api.routes.syllabus import router as syllabus_router
from studymentor.core.config import settings
from studymentor.core.logging import configure_logging
from studymentor.core.middleware import RequestContextMiddleware
from studymentor.observability.client import init_opik
from studymentor.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestContextMiddleware)
app.include_router(syllabus_router)
app.include_router(daily_plan_router)
app.include_router(suggestions_router)


@app.on_event("startup")
async def startup() -> None:
    """Initialize observability and, when configured, the database schema."""
    init_opik()
    if settings.db_auto_create:
        from studymentor.db.init_db import init_db
        from studymentor.db.session import engine

        init_db(engine)


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
