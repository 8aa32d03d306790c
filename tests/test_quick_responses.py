"""Tests for canned quick responses."""

import pytest

from projecthub_ai.safety.quick_responses import QuickResponseMatcher
from projecthub_ai.safety.rules import DEFAULT_RULES_PATH, ClassifierRules, QuickResponseGroup, load_rules


@pytest.fixture(scope="module")
def matcher():
    return QuickResponseMatcher(load_rules(DEFAULT_RULES_PATH))


class TestQuickResponseMatcher:
    @pytest.mark.parametrize("message,group", [
        ("hi", "greeting"),
        ("  Hello  ", "greeting"),
        ("hey there", "greeting"),
        ("नमस्ते", "greeting"),
        ("నమస్తే", "greeting"),
        ("thanks a lot!", "thanks"),
        ("thx", "thanks"),
        ("who are you?", "who_are_you"),
        ("What is ProjectHub", "platform"),
        ("what can you do", "capabilities"),
        ("ok bye", "goodbye"),
        ("how are you doing", "how_are_you"),
        ("which languages do you know", "languages"),
        ("what's your name", "name"),
        ("help", "help"),
        ("/help", "help"),
    ])
    def test_groups(self, matcher, message, group):
        assert matcher.match_group(message).name == group

    def test_exact_needs_word_boundary(self, matcher):
        assert matcher.match("history of javascript closures") is None
        assert matcher.match("highlight syntax in my editor") is None

    @pytest.mark.parametrize("message", [
        "help me fix this TypeError in my react component",
        "please explain how useEffect cleanup works",
        "pls review my flask route for bugs",
        "help with sql joins",
    ])
    def test_help_command_only_on_its_own(self, matcher, message):
        assert matcher.match_group(message) is None

    @pytest.mark.parametrize("message", ["help me", "Please", " pls "])
    def test_help_command_phrases(self, matcher, message):
        assert matcher.match_group(message).name == "help"

    def test_no_match_returns_none(self, matcher):
        assert matcher.match("How do I set up a Flask project with SQLAlchemy?") is None

    def test_empty_message(self, matcher):
        assert matcher.match("   ") is None

    def test_first_group_wins(self, matcher):
        # "hi" greeting comes before "who are you"
        assert matcher.match_group("hi who are you").name == "greeting"

    def test_response_text(self, matcher):
        assert "Diksuchi-AI" in matcher.match("hello")

    def test_custom_order(self):
        rules = load_rules(DEFAULT_RULES_PATH)
        custom = ClassifierRules(
            **{
                **rules.model_dump(),
                "quick_responses": [
                    QuickResponseGroup(name="a", contains=["Same Phrase"], response="first"),
                    QuickResponseGroup(name="b", contains=["same phrase"], response="second"),
                ],
            }
        )
        assert QuickResponseMatcher(custom).match("this has the same phrase") == "first"
