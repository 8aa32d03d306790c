"""Canned replies for common small talk, answered without a model call."""

from typing import List, Optional

from projecthub_ai.safety.rules import ClassifierRules, QuickResponseGroup, get_default_rules


class QuickResponseMatcher:
    """
    Match a message against ordered intent groups.

    A group's ``only`` phrases match when the trimmed, lower-cased message
    is exactly the phrase. ``exact`` phrases also match as a prefix followed
    by a space.
    ``contains`` phrases match anywhere. Groups are tried in order and the
    first match wins.
    """

    def __init__(self, rules: Optional[ClassifierRules] = None):
        self.groups: List[QuickResponseGroup] = list((rules or get_default_rules()).quick_responses)

    def match_group(self, message: str) -> Optional[QuickResponseGroup]:
        """Return the first group matching the message, if any."""
        text = message.strip().lower()
        if not text:
            return None

        for group in self.groups:
            if text in group.only:
                return group
            if any(text == phrase or text.startswith(phrase + " ") for phrase in group.exact):
                return group
            if any(phrase in text for phrase in group.contains):
                return group
        return None

    def match(self, message: str) -> Optional[str]:
        """Return the canned reply for a message, or None."""
        group = self.match_group(message)
        return group.response if group else None
