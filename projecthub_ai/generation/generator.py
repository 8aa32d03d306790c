"""
Structured guide and roadmap generator.

Both operations build a prompt, ask the model service for a JSON object and
then always run the repair pass. Output the repair pass cannot use falls back
to the templated guide or the default roadmap; only an unavailable service
reaches the caller as an error.
"""

from typing import Any, Dict, Optional

from projecthub_ai.core.models import ChatMessage, ModelCallResult
from projecthub_ai.core.service import ModelService
from projecthub_ai.logger import get_logger
from projecthub_ai.providers.prompts import (
    GUIDE_SYSTEM_PROMPT,
    ROADMAP_SYSTEM_PROMPT,
    build_guide_prompt,
    build_roadmap_prompt,
)
from projecthub_ai.utils.helpers import parse_json_object

from .guide import repair_guide
from .models import GuideDocument, ProjectSpec, TaskRoadmap
from .roadmap import repair_roadmap

logger = get_logger(__name__)


def call_metadata(result: ModelCallResult, parsed: bool) -> Dict[str, Any]:
    """Metadata block attached to every generated document."""
    return {
        "model": result.model_used,
        "tokensUsed": result.tokens_used,
        "duration": result.duration_seconds,
        "isFallback": result.is_fallback,
        "parsed": parsed,
    }


class StructuredGuideGenerator:
    """Generates project guides and task roadmaps."""

    def __init__(self, service: ModelService):
        """
        Initialize the generator.

        Args:
            service: Shared model service
        """
        self.service = service

    async def _generate(self, system_prompt: str, prompt: str) -> tuple:
        result = await self.service.chat(
            [ChatMessage(role="system", content=system_prompt), ChatMessage(role="user", content=prompt)],
            json_format=True
        )
        data = parse_json_object(result.content)
        if data is None:
            logger.warning(
                "Model output was not a JSON object, using template",
                extra={"model": result.model_used, "is_fallback": result.is_fallback}
            )
        return data, result

    async def generate_project_guide(self, spec: ProjectSpec) -> GuideDocument:
        """
        Generate a complete project guide.

        Raises:
            ServiceBusyError: If neither model tier could answer
        """
        logger.info(f"Generating project guide for {spec.project_name}")
        data, result = await self._generate(GUIDE_SYSTEM_PROMPT, build_guide_prompt(spec))
        return repair_guide(data, spec, call_metadata(result, data is not None))

    async def generate_task_roadmap(self, spec: ProjectSpec) -> TaskRoadmap:
        """
        Generate a task roadmap grouped into milestones.

        Raises:
            ServiceBusyError: If neither model tier could answer
        """
        logger.info(f"Generating task roadmap for {spec.project_name}")
        data, result = await self._generate(ROADMAP_SYSTEM_PROMPT, build_roadmap_prompt(spec))

        raw: Optional[Any] = data
        if isinstance(data, dict) and "milestones" not in data and isinstance(data.get("roadmap"), dict):
            raw = data["roadmap"]

        milestones, stats = repair_roadmap(raw)
        metadata = {**call_metadata(result, data is not None), "repair": stats}
        return TaskRoadmap(milestones=milestones, metadata=metadata)
