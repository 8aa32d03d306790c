"""
Content safety classifier for inbound chat messages.

The classifier is a fixed pipeline of cheap checks. The first stage that
rejects a message decides the verdict:

1. Language: the writing system must be Latin, Telugu or Devanagari
2. Profanity: multilingual block list
3. Blocked topics: subjects outside the assistant's purpose
4. Educational intent: long messages must look like learning questions
"""

import re
import unicodedata
from typing import Optional, Pattern, Tuple

from projecthub_ai.constants import (
    BENEFIT_OF_DOUBT_LENGTH,
    SHORT_TEXT_THRESHOLD,
    SMALL_TALK_LENGTH
)
from projecthub_ai.core.models import SafetyReason, SafetyVerdict
from projecthub_ai.logger import get_logger
from projecthub_ai.safety.rules import ClassifierRules, get_default_rules

logger = get_logger(__name__)

UNKNOWN_SCRIPT = "unknown"


def strip_non_letters(text: str) -> str:
    """
    Drop digits, whitespace, punctuation and symbols.

    Letters and combining marks remain, so the result is what the script
    checks look at. Emoji count as symbols.
    """
    return "".join(ch for ch in text if unicodedata.category(ch)[0] in ("L", "M"))


class ContentSafetyClassifier:
    """
    Deterministic, side-effect free message classifier.

    Rule tables come from ``ClassifierRules``; patterns are compiled once at
    construction.
    """

    def __init__(self, rules: Optional[ClassifierRules] = None):
        """
        Initialize the classifier.

        Args:
            rules: Rule tables (defaults to the configured YAML rules)
        """
        self.rules = rules or get_default_rules()
        self._blocked: Tuple[Tuple[str, Pattern[str]], ...] = tuple(
            (name, re.compile(pattern)) for name, pattern in self.rules.blocked_scripts.items()
        )
        self._supported: Tuple[Pattern[str], ...] = tuple(
            re.compile(pattern) for pattern in self.rules.supported_scripts.values()
        )

    def classify(self, message: str) -> SafetyVerdict:
        """
        Classify a message.

        Args:
            message: Raw user message

        Returns:
            SafetyVerdict: Accepted, or rejected with a reason and user-facing text
        """
        verdict = (
            self._check_language(message)
            or self._check_profanity(message)
            or self._check_topics(message)
            or self._check_educational(message)
        )
        if verdict is None:
            return SafetyVerdict.accept()

        logger.info(
            f"Message rejected: {verdict.reason_code.value}",
            extra={"detail": verdict.detail}
        )
        return verdict

    def _reject(self, reason: SafetyReason, detail: Optional[str] = None) -> SafetyVerdict:
        return SafetyVerdict.reject(reason, getattr(self.rules.messages, reason.value), detail)

    def _check_language(self, message: str) -> Optional[SafetyVerdict]:
        letters = strip_non_letters(message)
        if not letters:
            return None

        for name, pattern in self._blocked:
            if pattern.search(letters):
                return self._reject(SafetyReason.UNSUPPORTED_LANGUAGE, name)

        has_supported = any(pattern.search(letters) for pattern in self._supported)
        if not has_supported and len(letters) > SHORT_TEXT_THRESHOLD:
            return self._reject(SafetyReason.UNSUPPORTED_LANGUAGE, UNKNOWN_SCRIPT)

        return None

    def _check_profanity(self, message: str) -> Optional[SafetyVerdict]:
        lowered = message.lower()
        for term in self.rules.profanity:
            if term in lowered:
                return self._reject(SafetyReason.INAPPROPRIATE_LANGUAGE)
        return None

    def _check_topics(self, message: str) -> Optional[SafetyVerdict]:
        lowered = message.lower()
        for topic in self.rules.blocked_topics:
            if topic in lowered:
                return self._reject(SafetyReason.NON_EDUCATIONAL, topic)
        return None

    def _check_educational(self, message: str) -> Optional[SafetyVerdict]:
        trimmed = message.strip()
        if len(trimmed) < SMALL_TALK_LENGTH:
            return None

        lowered = trimmed.lower()
        if any(keyword in lowered for keyword in self.rules.educational_keywords):
            return None

        if len(trimmed) > BENEFIT_OF_DOUBT_LENGTH:
            return self._reject(SafetyReason.NON_EDUCATIONAL)
        return None
