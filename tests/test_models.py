"""
Unit tests for the data models - validation, aliases and derived fields.
"""

import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import (
    Product, ImageResult,
    Session, ConversationTurn, Preferences,
    BehaviorProfile,
    ConversationReply, ConversationRequest, RecommendationRequest, SearchResponse
)
from tests.test_logger import test_logger


class TestProductModel:
    """Test suite for Product."""

    def setup_method(self):
        test_logger.log_section("TESTING: models/product_models.py")

    def test_product_defaults_and_coercion(self):
        """Numeric ids and prices are stored as text; missing fields take defaults."""
        test_logger.log_test_start("product_models.py", "Product", "defaults_and_coercion")

        try:
            product = Product(id=42, price=999.99)

            assert product.id == "42"
            assert product.price == "999.99"
            assert product.title == "Untitled"
            assert product.description == ""
            assert product.rating is None
            assert product.score == 0.0

            test_logger.log_test_pass("product_models.py", "Product", "defaults_and_coercion")
        except Exception as e:
            test_logger.log_test_fail("product_models.py", "Product", "defaults_and_coercion", str(e))
            raise

    def test_product_accepts_search_hit_score(self):
        """'_score' from a raw hit populates score."""
        test_logger.log_test_start("product_models.py", "Product", "underscore_score")

        try:
            product = Product.model_validate({"id": "p1", "_score": 3.5})
            assert product.score == 3.5

            test_logger.log_test_pass("product_models.py", "Product", "underscore_score")
        except Exception as e:
            test_logger.log_test_fail("product_models.py", "Product", "underscore_score", str(e))
            raise

    def test_product_rating_bounds(self):
        """Ratings outside 0-5 are rejected."""
        test_logger.log_test_start("product_models.py", "Product", "rating_bounds")

        try:
            with pytest.raises(ValidationError):
                Product(id="p1", rating=7)
            with pytest.raises(ValidationError):
                Product(id="p1", reviews=-1)

            test_logger.log_test_pass("product_models.py", "Product", "rating_bounds")
        except Exception as e:
            test_logger.log_test_fail("product_models.py", "Product", "rating_bounds", str(e))
            raise

    def test_product_serializes_camel_case(self):
        test_logger.log_test_start("product_models.py", "ImageResult", "camel_case")

        try:
            image = ImageResult(url="http://img", alt_text="XPS 13 - Dell Product")
            data = image.model_dump(by_alias=True)
            assert data["altText"] == "XPS 13 - Dell Product"
            assert data["source"] == "placeholder"

            test_logger.log_test_pass("product_models.py", "ImageResult", "camel_case")
        except Exception as e:
            test_logger.log_test_fail("product_models.py", "ImageResult", "camel_case", str(e))
            raise


class TestSessionModels:
    """Test suite for session models."""

    def setup_method(self):
        test_logger.log_section("TESTING: models/session_model.py")

    def test_turn_is_immutable(self):
        test_logger.log_test_start("session_model.py", "ConversationTurn", "frozen")

        try:
            turn = ConversationTurn(role="user", text="hello")
            with pytest.raises(ValidationError):
                turn.text = "changed"

            test_logger.log_test_pass("session_model.py", "ConversationTurn", "frozen")
        except Exception as e:
            test_logger.log_test_fail("session_model.py", "ConversationTurn", "frozen", str(e))
            raise

    def test_turn_rejects_unknown_role(self):
        test_logger.log_test_start("session_model.py", "ConversationTurn", "invalid_role")

        try:
            with pytest.raises(ValidationError):
                ConversationTurn(role="system", text="hello")

            test_logger.log_test_pass("session_model.py", "ConversationTurn", "invalid_role")
        except Exception as e:
            test_logger.log_test_fail("session_model.py", "ConversationTurn", "invalid_role", str(e))
            raise

    def test_preferences_merge_extends_lists(self):
        """Lists are extended without duplicates, scalars replaced, None ignored."""
        test_logger.log_test_start("session_model.py", "Preferences.merged", "additive")

        try:
            prefs = Preferences(categories=["laptops"], use_case="office")
            merged = prefs.merged(categories=["laptops", "monitors"], use_case="gaming", brands=None)

            assert merged.categories == ["laptops", "monitors"]
            assert merged.use_case == "gaming"
            assert merged.brands == []
            assert prefs.categories == ["laptops"]

            test_logger.log_test_pass("session_model.py", "Preferences.merged", "additive")
        except Exception as e:
            test_logger.log_test_fail("session_model.py", "Preferences.merged", "additive", str(e))
            raise

    def test_session_staleness(self):
        """A session with no turns is never stale."""
        test_logger.log_test_start("session_model.py", "Session.is_stale", "cutoff")

        try:
            now = datetime.now(timezone.utc)
            empty = Session(id="s1")
            assert empty.is_stale(now + timedelta(days=365)) is False

            old = Session(id="s2", turns=[ConversationTurn(role="user", text="hi", timestamp=now - timedelta(days=2))])
            assert old.is_stale(now - timedelta(days=1)) is True
            assert old.is_stale(now - timedelta(days=3)) is False
            assert old.user_turn_count == 1

            test_logger.log_test_pass("session_model.py", "Session.is_stale", "cutoff")
        except Exception as e:
            test_logger.log_test_fail("session_model.py", "Session.is_stale", "cutoff", str(e))
            raise


class TestApiModels:
    """Test suite for request/response payloads."""

    def setup_method(self):
        test_logger.log_section("TESTING: models/chat_models.py")

    def test_conversation_request_accepts_camel_case(self):
        test_logger.log_test_start("chat_models.py", "ConversationRequest", "camel_case_input")

        try:
            request = ConversationRequest.model_validate({
                "sessionId": "abc",
                "message": "Need a laptop",
                "currentSearch": "laptop",
                "searchResults": [{"id": 1, "title": "XPS 13"}]
            })
            assert request.session_id == "abc"
            assert request.current_search == "laptop"
            assert request.search_results[0].id == "1"

            test_logger.log_test_pass("chat_models.py", "ConversationRequest", "camel_case_input")
        except Exception as e:
            test_logger.log_test_fail("chat_models.py", "ConversationRequest", "camel_case_input", str(e))
            raise

    def test_conversation_request_requires_message(self):
        test_logger.log_test_start("chat_models.py", "ConversationRequest", "empty_message")

        try:
            with pytest.raises(ValidationError):
                ConversationRequest(session_id="abc", message="")
            with pytest.raises(ValidationError):
                ConversationRequest(message="hello")

            test_logger.log_test_pass("chat_models.py", "ConversationRequest", "empty_message")
        except Exception as e:
            test_logger.log_test_fail("chat_models.py", "ConversationRequest", "empty_message", str(e))
            raise

    def test_reply_caps_suggestions(self):
        """At most 4 suggestions and 3 follow-up questions."""
        test_logger.log_test_start("chat_models.py", "ConversationReply", "caps")

        try:
            with pytest.raises(ValidationError):
                ConversationReply(message="hi", suggestions=["a", "b", "c", "d", "e"])
            with pytest.raises(ValidationError):
                ConversationReply(message="hi", follow_up_questions=["a", "b", "c", "d"])

            reply = ConversationReply(message="hi")
            data = reply.model_dump(by_alias=True)
            assert data["followUpQuestions"] == []
            assert data["metadata"]["turnCount"] == 0

            test_logger.log_test_pass("chat_models.py", "ConversationReply", "caps")
        except Exception as e:
            test_logger.log_test_fail("chat_models.py", "ConversationReply", "caps", str(e))
            raise

    def test_recommendation_request_all_optional(self):
        test_logger.log_test_start("chat_models.py", "RecommendationRequest", "optional_fields")

        try:
            request = RecommendationRequest.model_validate({
                "action": "track", "sessionId": "s", "productId": "p1", "actionType": "view"
            })
            assert request.search_results is None
            assert request.action_type == "view"

            test_logger.log_test_pass("chat_models.py", "RecommendationRequest", "optional_fields")
        except Exception as e:
            test_logger.log_test_fail("chat_models.py", "RecommendationRequest", "optional_fields", str(e))
            raise

    def test_search_response_and_profile_serialization(self):
        test_logger.log_test_start("chat_models.py", "SearchResponse", "serialization")

        try:
            response = SearchResponse(results=[Product(id="p1")], total=1, query="xps")
            data = response.model_dump(by_alias=True)
            assert data["chatResponse"] is None
            assert data["results"][0]["id"] == "p1"

            now = datetime.now(timezone.utc)
            profile = BehaviorProfile(started_at=now, last_active=now)
            profile_data = profile.model_dump(by_alias=True)
            assert profile_data["searchHistory"] == []
            assert profile_data["sessionDurationMs"] == 0

            test_logger.log_test_pass("chat_models.py", "SearchResponse", "serialization")
        except Exception as e:
            test_logger.log_test_fail("chat_models.py", "SearchResponse", "serialization", str(e))
            raise
