"""
Rule tables for the content safety classifier and quick responses.

Rules are plain data loaded from YAML so lists can be extended without code
changes. The bundled defaults live in ``safety/data/default_rules.yaml``; a
deployment can point ``SAFETY_RULES_PATH`` at its own file.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from projecthub_ai.config import settings
from projecthub_ai.exceptions import ConfigurationError
from projecthub_ai.logger import get_logger

logger = get_logger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent / "data" / "default_rules.yaml"


class QuickResponseGroup(BaseModel):
    """One canned intent: the phrases that trigger it and the reply."""

    name: str
    only: List[str] = Field(default_factory=list)
    exact: List[str] = Field(default_factory=list)
    contains: List[str] = Field(default_factory=list)
    response: str

    @field_validator("only", "exact", "contains")
    @classmethod
    def lowercase_phrases(cls, v: List[str]) -> List[str]:
        return [phrase.strip().lower() for phrase in v if phrase and phrase.strip()]


class RejectionMessages(BaseModel):
    """User-facing text for each rejection reason."""

    unsupported_language: str
    inappropriate_language: str
    non_educational: str


class ClassifierRules(BaseModel):
    """All data driving classification and quick responses."""

    blocked_scripts: Dict[str, str]
    supported_scripts: Dict[str, str]
    profanity: List[str] = Field(default_factory=list)
    blocked_topics: List[str] = Field(default_factory=list)
    educational_keywords: List[str] = Field(default_factory=list)
    messages: RejectionMessages
    quick_responses: List[QuickResponseGroup] = Field(default_factory=list)

    @field_validator("blocked_scripts", "supported_scripts")
    @classmethod
    def validate_patterns(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Every script range must compile as a regex character class."""
        for name, pattern in v.items():
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid pattern for script '{name}': {e}")
        return v

    @field_validator("profanity", "blocked_topics", "educational_keywords")
    @classmethod
    def lowercase_terms(cls, v: List[str]) -> List[str]:
        return [term.lower() for term in v if term]


def load_rules(path: Optional[Union[str, Path]] = None) -> ClassifierRules:
    """
    Load classifier rules from a YAML file.

    Args:
        path: YAML file to read; falls back to ``settings.safety_rules_path``
              and then to the bundled defaults

    Returns:
        ClassifierRules: Validated rule tables

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    rules_path = Path(path or settings.safety_rules_path or DEFAULT_RULES_PATH)

    try:
        with open(rules_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Safety rules file not found: {rules_path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in safety rules {rules_path}: {str(e)}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Safety rules must be a mapping: {rules_path}")

    try:
        rules = ClassifierRules.model_validate(data)
    except ValueError as e:
        raise ConfigurationError(f"Invalid safety rules in {rules_path}: {str(e)}")

    logger.debug(
        f"Loaded safety rules from {rules_path}",
        extra={
            "profanity_terms": len(rules.profanity),
            "blocked_topics": len(rules.blocked_topics),
            "quick_response_groups": len(rules.quick_responses),
        }
    )
    return rules


_default_rules: Optional[ClassifierRules] = None


def get_default_rules() -> ClassifierRules:
    """Load the configured rules once per process."""
    global _default_rules
    if _default_rules is None:
        _default_rules = load_rules()
    return _default_rules
