"""HTTP API for the ProjectHub AI assistant and project builder."""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from projecthub_ai._version import __version__
from projecthub_ai.chat.handler import BUSY_MESSAGE, RATE_LIMITED_MESSAGE
from projecthub_ai.constants import CREDIT_HISTORY_PAGE, LinkType
from projecthub_ai.container import ServiceContainer
from projecthub_ai.exceptions import ProjectHubError, ServiceBusyError, TimeoutError, ValidationError
from projecthub_ai.generation.models import ProjectSpec
from projecthub_ai.logger import get_logger
from projecthub_ai.utils.validators import validate_link

logger = get_logger(__name__)


class TaskHelpRequest(BaseModel):
    """Body of a task help request."""

    model_config = ConfigDict(populate_by_name=True)

    project: ProjectSpec
    task: Dict[str, Any]


class LinkCheckRequest(BaseModel):
    """Body of an artifact link check."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    link_type: Optional[str] = Field(default=None, alias="linkType")


def require_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Authenticated user id forwarded by the upstream auth layer."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Not authorized")
    return x_user_id.strip()


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        container: Pre-built services (tests inject one with a fake provider)

    Returns:
        FastAPI: Configured application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services = container or ServiceContainer()
        app.state.container = services
        await services.initialize()
        logger.info("ProjectHub AI API started")
        try:
            yield
        finally:
            await services.close()
            logger.info("ProjectHub AI API stopped")

    app = FastAPI(title="ProjectHub AI", version=__version__, lifespan=lifespan)

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"success": False, "message": "Invalid request"})

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"success": False, "message": str(exc)})

    @app.exception_handler(ServiceBusyError)
    async def service_busy(request: Request, exc: ServiceBusyError):
        if exc.rate_limited:
            return JSONResponse(status_code=429, content={"success": False, "message": RATE_LIMITED_MESSAGE})
        return JSONResponse(status_code=503, content={"success": False, "message": BUSY_MESSAGE})

    @app.exception_handler(TimeoutError)
    async def timed_out(request: Request, exc: TimeoutError):
        return JSONResponse(status_code=503, content={"success": False, "message": BUSY_MESSAGE})

    @app.exception_handler(ProjectHubError)
    async def internal_error(request: Request, exc: ProjectHubError):
        logger.error(f"Request failed: {str(exc)}", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"success": False, "message": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    @app.post("/api/chatbot/chat")
    async def chat(
        body: Dict[str, Any],
        user_id: str = Depends(require_user),
        services: ServiceContainer = Depends(get_container)
    ):
        """Run one chat turn for the calling user."""
        outcome = await services.chat.handle({**body, "userId": user_id})
        return JSONResponse(status_code=outcome.status_code, content=outcome.payload)

    @app.get("/api/chatbot/credits")
    async def credits(user_id: str = Depends(require_user), services: ServiceContainer = Depends(get_container)):
        return await services.chat.credit_info(user_id)

    @app.get("/api/chatbot/credits/history")
    async def credit_history(
        limit: int = Query(default=CREDIT_HISTORY_PAGE, ge=1, le=500),
        user_id: str = Depends(require_user),
        services: ServiceContainer = Depends(get_container)
    ):
        return await services.chat.credit_history(user_id, limit)

    @app.get("/api/chatbot/history")
    async def chat_history(
        limit: Optional[int] = Query(default=None, ge=1),
        user_id: str = Depends(require_user),
        services: ServiceContainer = Depends(get_container)
    ):
        return await services.chat.chat_history(user_id, limit)

    @app.delete("/api/chatbot/history")
    async def clear_chat_history(user_id: str = Depends(require_user), services: ServiceContainer = Depends(get_container)):
        return await services.chat.clear_history(user_id)

    @app.post("/api/projects/guide")
    async def project_guide(
        spec: ProjectSpec,
        user_id: str = Depends(require_user),
        services: ServiceContainer = Depends(get_container)
    ):
        """Generate a complete project guide."""
        guide = await services.generator.generate_project_guide(spec)
        return {"success": True, "guide": guide.to_wire()}

    @app.post("/api/projects/roadmap")
    async def project_roadmap(
        spec: ProjectSpec,
        user_id: str = Depends(require_user),
        services: ServiceContainer = Depends(get_container)
    ):
        """Generate a task roadmap."""
        roadmap = await services.generator.generate_task_roadmap(spec)
        return {"success": True, "roadmap": roadmap.to_wire()}

    @app.post("/api/projects/tasks/help")
    async def task_help(
        body: TaskHelpRequest,
        user_id: str = Depends(require_user),
        services: ServiceContainer = Depends(get_container)
    ):
        if not body.task.get("title"):
            raise ValidationError("Task title is required")
        help_content = await services.task_help.generate(body.project, body.task)
        return {"success": True, "help": help_content.to_wire()}

    @app.post("/api/projects/tasks/validate-link")
    async def validate_task_link(body: LinkCheckRequest, user_id: str = Depends(require_user)):
        valid = validate_link(body.url, body.link_type)
        return {
            "success": True,
            "valid": valid,
            "linkType": body.link_type or LinkType.ANY.value,
        }

    @app.get("/api/ai/stats")
    async def ai_stats(services: ServiceContainer = Depends(get_container)):
        return {
            "success": True,
            "stats": services.service.get_stats(),
            "model": services.service.model_info(),
        }

    return app
