"""Main FastAPI application for the study planner backend."""
from fastapi import FastAPI, Request

from studyplanner.api.routes.assignment import router as assignment_router
from studyplanner.api.routes.study_plan import router as study_plan_router
from studyplanner.api.routes.user import router as user_router
from studyplanner.core.config import settings
from studyplanner.core.logging import configure_logging
from studyplanner.core.middleware import RequestIDMiddleware
from studyplanner.observability.client import init_opik
from studyplanner.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0", debug=settings.debug)
app.add_middleware(RequestIDMiddleware)
app.include_router(study_plan_router)
app.include_router(assignment_router)
app.include_router(user_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness check")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can check the API is up."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
