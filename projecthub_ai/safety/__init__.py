"""Content safety classification and quick responses."""

from projecthub_ai.safety.classifier import ContentSafetyClassifier
from projecthub_ai.safety.quick_responses import QuickResponseMatcher
from projecthub_ai.safety.rules import ClassifierRules, load_rules

__all__ = ["ClassifierRules", "ContentSafetyClassifier", "QuickResponseMatcher", "load_rules"]
