"""Process-wide service wiring shared by the web app and the CLI."""

from typing import Optional

from projecthub_ai.chat.handler import ChatHandler
from projecthub_ai.config import Settings, settings as default_settings
from projecthub_ai.core.service import ModelService, build_service
from projecthub_ai.credits.meter import CreditMeter
from projecthub_ai.generation.generator import StructuredGuideGenerator
from projecthub_ai.generation.task_help import TaskHelpGenerator
from projecthub_ai.logger import get_logger
from projecthub_ai.providers.base import LLMProvider
from projecthub_ai.safety.classifier import ContentSafetyClassifier
from projecthub_ai.safety.quick_responses import QuickResponseMatcher
from projecthub_ai.safety.rules import load_rules
from projecthub_ai.storage import create_stores

logger = get_logger(__name__)


class ServiceContainer:
    """
    Owns one instance of every long-lived service.

    The model service holds the request queue and the rate window, so there
    must be exactly one per process.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        provider: Optional[LLMProvider] = None,
        service: Optional[ModelService] = None
    ):
        self.settings = settings or default_settings
        self.service = service or build_service(self.settings, provider)

        rules = load_rules(self.settings.safety_rules_path)
        self.classifier = ContentSafetyClassifier(rules)
        self.quick_responses = QuickResponseMatcher(rules)
        self.meter = CreditMeter(self.settings.long_message_threshold)

        self.credit_store, self.history_store = create_stores(self.settings)
        self.chat = ChatHandler(
            service=self.service,
            credit_store=self.credit_store,
            history_store=self.history_store,
            classifier=self.classifier,
            quick_responses=self.quick_responses,
            meter=self.meter,
            settings=self.settings
        )
        self.generator = StructuredGuideGenerator(self.service)
        self._task_help: Optional[TaskHelpGenerator] = None
        self._initialized = False

    @property
    def task_help(self) -> TaskHelpGenerator:
        """Task help generator; the disk cache is opened on first use."""
        if self._task_help is None:
            self._task_help = TaskHelpGenerator(self.service, settings=self.settings)
        return self._task_help

    async def initialize(self) -> None:
        if self._initialized:
            return
        await self.credit_store.initialize()
        await self.history_store.initialize()
        self._initialized = True
        logger.info(
            "Services initialized",
            extra={
                "provider": self.settings.llm_provider,
                "storage_backend": self.settings.storage_backend,
            }
        )

    async def close(self) -> None:
        await self.service.aclose()
        await self.credit_store.close()
        await self.history_store.close()
        if self._task_help is not None:
            self._task_help.close()
        self._initialized = False

    async def __aenter__(self) -> "ServiceContainer":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
