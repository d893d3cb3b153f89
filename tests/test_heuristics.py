"""
Unit tests for heuristics.py - keyword rules, suggestions, follow-ups and fallbacks.
"""

import os

import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from heuristics import (
    KeywordRule, FALLBACK_RULES, FALLBACK_FOLLOW_UPS, FIRST_TURN_QUESTIONS,
    GENERIC_FALLBACK_SUGGESTIONS, GENERIC_CHAT_SUGGESTIONS,
    derive_suggestions, derive_follow_ups, first_matching_rule,
    fallback_response, chat_suggestions
)
from tests.test_logger import test_logger


class TestKeywordRule:
    """Test suite for KeywordRule."""

    def setup_method(self):
        test_logger.log_section("TESTING: heuristics.py - KeywordRule")

    def test_matches_case_insensitive_substring(self):
        test_logger.log_test_start("heuristics.py", "KeywordRule.matches", "substring")

        try:
            rule = KeywordRule(("laptop", "notebook"), ("Gaming laptops",))
            assert rule.matches("Best LAPTOPS for school")
            assert rule.matches("a notebook")
            assert not rule.matches("a desktop")
            assert not rule.matches(None)
            assert not rule.matches("")

            test_logger.log_test_pass("heuristics.py", "KeywordRule.matches", "substring")
        except Exception as e:
            test_logger.log_test_fail("heuristics.py", "KeywordRule.matches", "substring", str(e))
            raise


class TestDeriveSuggestions:
    """Test suite for derive_suggestions."""

    def setup_method(self):
        test_logger.log_section("TESTING: heuristics.py - derive_suggestions")

    def test_laptop_reply(self):
        test_logger.log_test_start("heuristics.py", "derive_suggestions", "laptop_reply")

        try:
            suggestions = derive_suggestions("I recommend the XPS laptop for travel.", "laptop")

            assert "Gaming laptops" in suggestions
            assert len(suggestions) <= 4
            assert len(suggestions) == len(set(suggestions))

            test_logger.log_test_pass("heuristics.py", "derive_suggestions", "laptop_reply")
        except Exception as e:
            test_logger.log_test_fail("heuristics.py", "derive_suggestions", "laptop_reply", str(e))
            raise

    def test_reply_and_query_rules_combine_and_truncate(self):
        """Rule order decides which items survive the cap."""
        test_logger.log_test_start("heuristics.py", "derive_suggestions", "truncate")

        try:
            suggestions = derive_suggestions("A laptop and a monitor", "gaming setup")

            assert suggestions == ["Gaming laptops", "Business laptops", "Budget laptops", "4K monitors"]

            test_logger.log_test_pass("heuristics.py", "derive_suggestions", "truncate")
        except Exception as e:
            test_logger.log_test_fail("heuristics.py", "derive_suggestions", "truncate", str(e))
            raise

    def test_no_match_is_empty(self):
        test_logger.log_test_start("heuristics.py", "derive_suggestions", "no_match")

        try:
            assert derive_suggestions("Happy to help!", None) == []

            test_logger.log_test_pass("heuristics.py", "derive_suggestions", "no_match")
        except Exception as e:
            test_logger.log_test_fail("heuristics.py", "derive_suggestions", "no_match", str(e))
            raise


class TestDeriveFollowUps:
    """Test suite for derive_follow_ups."""

    def setup_method(self):
        test_logger.log_section("TESTING: heuristics.py - derive_follow_ups")

    def test_first_turn_seeds(self):
        test_logger.log_test_start("heuristics.py", "derive_follow_ups", "first_turn")

        try:
            follow_ups = derive_follow_ups("Happy to help!", None, is_first_user_turn=True)
            assert follow_ups == list(FIRST_TURN_QUESTIONS)

            assert derive_follow_ups("Happy to help!", None, is_first_user_turn=False) == []

            test_logger.log_test_pass("heuristics.py", "derive_follow_ups", "first_turn")
        except Exception as e:
            test_logger.log_test_fail("heuristics.py", "derive_follow_ups", "first_turn", str(e))
            raise

    def test_capped_at_three(self):
        test_logger.log_test_start("heuristics.py", "derive_follow_ups", "cap")

        try:
            follow_ups = derive_follow_ups(
                "Let me compare the price and technical details", "laptop", is_first_user_turn=True
            )
            assert len(follow_ups) == 3
            assert follow_ups[:2] == list(FIRST_TURN_QUESTIONS)
            assert follow_ups[2] == "Which specific models should I compare?"

            test_logger.log_test_pass("heuristics.py", "derive_follow_ups", "cap")
        except Exception as e:
            test_logger.log_test_fail("heuristics.py", "derive_follow_ups", "cap", str(e))
            raise

    def test_query_rules(self):
        test_logger.log_test_start("heuristics.py", "derive_follow_ups", "query_rules")

        try:
            follow_ups = derive_follow_ups("Here you go.", "rack server", is_first_user_turn=False)
            assert follow_ups == [
                "How many users will access this server?",
                "What type of data will you be storing?",
            ]

            test_logger.log_test_pass("heuristics.py", "derive_follow_ups", "query_rules")
        except Exception as e:
            test_logger.log_test_fail("heuristics.py", "derive_follow_ups", "query_rules", str(e))
            raise


class TestFallbackResponse:
    """Test suite for fallback_response."""

    def setup_method(self):
        test_logger.log_section("TESTING: heuristics.py - fallback_response")

    def test_budget_laptop_uses_laptop_branch_only(self):
        """'I need a budget laptop' takes the laptop clause and never the budget one."""
        test_logger.log_test_start("heuristics.py", "fallback_response", "priority")

        try:
            fallback = fallback_response("I need a budget laptop")

            assert "For laptops" in fallback.message
            assert "budget-friendly" not in fallback.message
            assert len(fallback.suggestions) == 4
            assert fallback.suggestions[0] == "XPS laptops"
            assert fallback.follow_up_questions == FALLBACK_FOLLOW_UPS

            test_logger.log_test_pass("heuristics.py", "fallback_response", "priority")
        except Exception as e:
            test_logger.log_test_fail("heuristics.py", "fallback_response", "priority", str(e))
            raise

    def test_laptop_precedes_desktop(self):
        test_logger.log_test_start("heuristics.py", "fallback_response", "laptop_vs_desktop")

        try:
            fallback = fallback_response("desktop or laptop?")
            assert "For laptops" in fallback.message
            assert "For desktops" not in fallback.message
            assert first_matching_rule(FALLBACK_RULES, "desktop or laptop?") is FALLBACK_RULES[0]

            test_logger.log_test_pass("heuristics.py", "fallback_response", "laptop_vs_desktop")
        except Exception as e:
            test_logger.log_test_fail("heuristics.py", "fallback_response", "laptop_vs_desktop", str(e))
            raise

    def test_generic_fallback(self):
        test_logger.log_test_start("heuristics.py", "fallback_response", "generic")

        try:
            fallback = fallback_response("hello there")
            assert fallback.suggestions == GENERIC_FALLBACK_SUGGESTIONS
            assert fallback.matched_keywords == ()
            assert fallback.message.startswith("I'm having trouble")

            test_logger.log_test_pass("heuristics.py", "fallback_response", "generic")
        except Exception as e:
            test_logger.log_test_fail("heuristics.py", "fallback_response", "generic", str(e))
            raise


class TestChatSuggestions:
    """Test suite for chat_suggestions."""

    def setup_method(self):
        test_logger.log_section("TESTING: heuristics.py - chat_suggestions")

    def test_pads_sparse_suggestions(self):
        test_logger.log_test_start("heuristics.py", "chat_suggestions", "padding")

        try:
            assert chat_suggestions("Sure.", "anything") == list(GENERIC_CHAT_SUGGESTIONS)

            rich = chat_suggestions("Our laptop range is broad", None)
            assert rich == ["Gaming laptops", "Business laptops", "Budget laptops"]

            test_logger.log_test_pass("heuristics.py", "chat_suggestions", "padding")
        except Exception as e:
            test_logger.log_test_fail("heuristics.py", "chat_suggestions", "padding", str(e))
            raise
