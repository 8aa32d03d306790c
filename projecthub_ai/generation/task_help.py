"""Beginner help for individual roadmap tasks, cached on disk."""

from pathlib import Path
from typing import Any, Dict, Optional

import diskcache

from projecthub_ai.config import Settings, settings as default_settings
from projecthub_ai.core.models import ChatMessage
from projecthub_ai.core.service import ModelService
from projecthub_ai.exceptions import ServiceBusyError, TimeoutError
from projecthub_ai.logger import get_logger
from projecthub_ai.providers.prompts import TASK_HELP_SYSTEM_PROMPT, build_task_help_prompt
from projecthub_ai.utils.helpers import calculate_hash, parse_json_object

from .models import HelpCommand, HelpStep, ProjectSpec, TaskHelp

logger = get_logger(__name__)

UNAVAILABLE_MESSAGE = "Unable to generate help content. Please try again."


def fallback_help() -> TaskHelp:
    """Generic help shown when the model cannot be reached."""
    return TaskHelp(
        commands=[
            HelpCommand(
                description="Check task resources",
                command="See the resources section below for helpful links"
            )
        ],
        steps=[
            HelpStep(
                title="Read Task Description",
                description="Carefully read the task description and understand what needs to be accomplished."
            ),
            HelpStep(
                title="Review Learning Points",
                description="Check the learning points to understand what skills you will practice."
            ),
            HelpStep(
                title="Use Resources",
                description="Click on the resource links provided to learn more about the concepts."
            ),
            HelpStep(
                title="Complete and Submit",
                description="Complete the task and submit the required artifact link."
            ),
        ]
    )


def parse_help(content: str) -> TaskHelp:
    """
    Build task help from model output.

    Entries without the required fields are skipped. Output with no JSON
    object becomes a single step carrying the raw text.
    """
    data = parse_json_object(content)
    if data is None:
        text = content.strip() if content else ""
        return TaskHelp(steps=[HelpStep(title="Guide", description=text or UNAVAILABLE_MESSAGE)])

    commands = []
    for item in data.get("commands") or []:
        if isinstance(item, dict) and item.get("command"):
            commands.append(HelpCommand(
                description=str(item.get("description") or ""),
                command=str(item["command"])
            ))

    steps = []
    for item in data.get("steps") or []:
        if isinstance(item, dict) and item.get("title") and item.get("description"):
            code = item.get("code")
            steps.append(HelpStep(
                title=str(item["title"]),
                description=str(item["description"]),
                code=str(code) if code else None
            ))

    return TaskHelp(commands=commands, steps=steps)


class TaskHelpGenerator:
    """
    Generates help for a roadmap task.

    Results are kept in a size-bounded ``diskcache.Cache`` with LRU eviction,
    keyed by project and task so repeated requests cost no model calls.
    """

    def __init__(
        self,
        service: ModelService,
        cache: Optional[diskcache.Cache] = None,
        settings: Optional[Settings] = None
    ):
        self.service = service
        self.settings = settings or default_settings
        self._owns_cache = cache is None
        self.cache = cache if cache is not None else self._open_cache()

    def _open_cache(self) -> diskcache.Cache:
        directory = Path(self.settings.cache_dir) / "task_help"
        directory.mkdir(parents=True, exist_ok=True)
        return diskcache.Cache(
            str(directory),
            eviction_policy='least-recently-used',
            size_limit=self.settings.help_cache_size_limit,
            disk_min_file_size=1024
        )

    @staticmethod
    def cache_key(spec: ProjectSpec, task: Dict[str, Any]) -> str:
        raw = f"{spec.project_name}:{task.get('taskId', task.get('task_id', ''))}:{task.get('title', '')}"
        return f"task_help:{calculate_hash(raw)}"

    async def generate(self, spec: ProjectSpec, task: Dict[str, Any]) -> TaskHelp:
        """
        Return help for a task, from cache when available.

        Args:
            spec: Project the task belongs to
            task: Task fields (``taskId``, ``title``, ``description``, ``type``)

        Returns:
            TaskHelp: Commands and steps; generic help if the model is unavailable
        """
        key = self.cache_key(spec, task)
        cached = self.cache.get(key)
        if cached:
            logger.debug("Task help served from cache", extra={"cache_key": key})
            return TaskHelp(**cached)

        try:
            result = await self.service.chat(
                [
                    ChatMessage(role="system", content=TASK_HELP_SYSTEM_PROMPT),
                    ChatMessage(role="user", content=build_task_help_prompt(spec, task)),
                ],
                temperature=0.5,
                max_tokens=1500,
                json_format=True
            )
        except (ServiceBusyError, TimeoutError) as e:
            logger.warning(f"Task help unavailable, using generic help: {str(e)}")
            return fallback_help()

        help_content = parse_help(result.content)
        if help_content.is_empty:
            logger.info("Model task help incomplete, not caching", extra={"title": task.get("title")})
        else:
            self.cache[key] = help_content.model_dump(mode='json')
        return help_content

    def close(self) -> None:
        if self._owns_cache:
            self.cache.close()
