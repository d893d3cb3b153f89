"""
Recommendation agent.

Product selection is deterministic (see ranker); the completion service is
asked only for free-text explanations of the three buckets.
"""

import asyncio
import re
from typing import List, Optional, Sequence

from behavior import BehaviorTracker, get_behavior_tracker
from models import BehaviorProfile, Product, RecommendationSet
from ranker import partition, positional_partition
from tools.completion_tool import CompletionError, CompletionService, get_completion_service
from config import get_config
from logger import get_logger, log_async_function_call

logger = get_logger(__name__)

RECOMMENDATION_MAX_TOKENS = 1000

RECOMMENDER_PERSONA = (
    "You are an expert Dell product recommendation AI. Analyze user behavior, search context, and "
    "product relationships to provide intelligent recommendations. Focus on practical, helpful "
    "suggestions that match user needs."
)

DEFAULT_EXPLANATIONS = [
    "Based on your search, here are some personalized recommendations",
    "Products that complement your current search",
    "Popular choices in similar categories",
]

FALLBACK_EXPLANATIONS = [
    "Top-rated products based on your search",
    "Related products you might like",
    "Popular choices in this category",
]

_EXPLANATION_PREFIX = re.compile(r".*EXPLANATIONS?:\s*", re.IGNORECASE)


def extract_explanations(reply_text: str) -> List[str]:
    """Pull the text following each 'EXPLANATIONS:' / 'Explanation:' marker."""
    explanations = []
    for line in reply_text.splitlines():
        if "EXPLANATIONS:" in line or "Explanation:" in line:
            explanation = _EXPLANATION_PREFIX.sub("", line, count=1).strip()
            if explanation:
                explanations.append(explanation)
    return explanations


def build_recommendation_prompt(
    query: str,
    candidates: Sequence[Product],
    profile: Optional[BehaviorProfile]
) -> str:
    current_products = ", ".join(
        f"{p.title} ({p.category or 'uncategorized'}, {p.price or 'price unavailable'})"
        for p in list(candidates)[:5]
    )

    prompt = f'Current search: "{query}"\nCurrent results: {current_products}\n\n' \
             "Generate smart product recommendations for this user. Consider:"

    if profile is not None:
        prompt += (
            "\nUser behavior:"
            f"\n- Search history: {', '.join(profile.search_history[-5:])}"
            f"\n- Viewed products: {', '.join(profile.viewed_products[-3:])}"
            f"\n- Clicked products: {', '.join(profile.clicked_products[-3:])}"
        )

    prompt += """

Provide recommendations in this format:
PERSONALIZED: [3 products that match user's specific needs and behavior]
RELATED: [3 products that complement the current search]
TRENDING: [3 popular products in similar categories]
EXPLANATIONS: [Brief explanations for each recommendation category]

Focus on Dell products and be specific about why each recommendation makes sense."""
    return prompt


class RecommendationAgent:
    """Builds the personalized / related / trending recommendation set."""

    def __init__(
        self,
        behavior_tracker: Optional[BehaviorTracker] = None,
        completion_service: Optional[CompletionService] = None,
        timeout_seconds: Optional[float] = None
    ):
        self.behavior_tracker = behavior_tracker if behavior_tracker is not None else get_behavior_tracker()
        self._completion_service = completion_service
        if timeout_seconds is None:
            timeout_seconds = get_config().completion_timeout_seconds
        self.timeout_seconds = timeout_seconds

    @property
    def completion_service(self) -> CompletionService:
        """Lazy-load the completion service."""
        if self._completion_service is None:
            self._completion_service = get_completion_service()
        return self._completion_service

    @log_async_function_call()
    async def recommend(
        self,
        query: str,
        candidate_products: Sequence[Product],
        session_key: str
    ) -> RecommendationSet:
        """
        Partition candidates into three buckets and explain them.

        Bucket membership depends only on the candidates; only the
        explanation text depends on the completion service.
        """
        candidates = list(candidate_products or [])
        profile = self.behavior_tracker.get(session_key)
        prompt = build_recommendation_prompt(query, candidates, profile)

        reply_text = await self._complete(prompt)

        if reply_text is None:
            logger.fallback("recommendations", "completion unavailable", session_id=session_key)
            # Positional slicing only stands in when there is nothing to rank.
            buckets = positional_partition(candidates) if not candidates else partition(candidates)
            return RecommendationSet(**buckets, explanations=list(FALLBACK_EXPLANATIONS), degraded=True)

        buckets = partition(candidates)
        explanations = extract_explanations(reply_text) or list(DEFAULT_EXPLANATIONS)

        logger.info(
            "Recommendations generated",
            session_id=session_key,
            candidates=len(candidates),
            personalized=len(buckets["personalized"]),
            related=len(buckets["related"]),
            trending=len(buckets["trending"]),
            has_profile=profile is not None
        )
        return RecommendationSet(**buckets, explanations=explanations)

    async def _complete(self, prompt: str) -> Optional[str]:
        try:
            return await asyncio.wait_for(
                self.completion_service.complete(
                    RECOMMENDER_PERSONA, [], prompt, max_tokens=RECOMMENDATION_MAX_TOKENS
                ),
                timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error("Recommendation completion timed out", timeout_seconds=self.timeout_seconds)
        except CompletionError as e:
            logger.error(f"Recommendation completion failed: {type(e).__name__}: {str(e)}")
        except Exception as e:
            logger.error(f"Unexpected recommendation error: {type(e).__name__}: {str(e)}", exc_info=True)
        return None


_recommender: Optional[RecommendationAgent] = None


def get_recommender() -> RecommendationAgent:
    """Get or create the global recommendation agent."""
    global _recommender
    if _recommender is None:
        logger.info("Initializing RecommendationAgent singleton")
        _recommender = RecommendationAgent()
    return _recommender


def reset_recommender() -> None:
    global _recommender
    _recommender = None
