"""
Keyword heuristics that enrich assistant replies.

Every heuristic is an ordered tuple of KeywordRule entries evaluated in
priority order. Matching is plain lower-cased substring search: no model
calls, no randomness.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

MAX_SUGGESTIONS = 4
MAX_FOLLOW_UPS = 3


@dataclass(frozen=True)
class KeywordRule:
    """Fires when any keyword occurs in the (lower-cased) text."""
    keywords: Tuple[str, ...]
    payload: Tuple[str, ...]
    clause: str = ""

    def matches(self, text: Optional[str]) -> bool:
        if not text:
            return False
        lowered = text.lower()
        return any(keyword in lowered for keyword in self.keywords)


REPLY_SUGGESTION_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(("laptop", "notebook"), ("Gaming laptops", "Business laptops", "Budget laptops")),
    KeywordRule(("desktop", "workstation"), ("High-performance desktops", "Budget desktops", "Gaming desktops")),
    KeywordRule(("server", "enterprise"), ("PowerEdge servers", "Storage solutions", "Networking equipment")),
    KeywordRule(("monitor", "display"), ("4K monitors", "Gaming monitors", "Ultrawide displays")),
    KeywordRule(("accessories", "peripherals"), ("Keyboards and mice", "Docking stations", "Cables and adapters")),
)

QUERY_SUGGESTION_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(("gaming",), ("Gaming accessories", "RGB lighting", "High-refresh monitors")),
    KeywordRule(("business", "office"), ("Business software", "Security solutions", "Support services")),
    KeywordRule(("creative", "design"), ("Color-accurate monitors", "Stylus pens", "Graphics tablets")),
)

FIRST_TURN_QUESTIONS: Tuple[str, ...] = (
    "What will you primarily use this for?",
    "What's your budget range?",
)

REPLY_FOLLOW_UP_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(("compare", "difference"), (
        "Which specific models should I compare?",
        "What features are most important to you?",
    )),
    KeywordRule(("price", "cost"), (
        "Are you looking for financing options?",
        "Would you like to see current deals?",
    )),
    KeywordRule(("specification", "technical"), (
        "Do you need help understanding any specs?",
        "Would you like configuration recommendations?",
    )),
)

QUERY_FOLLOW_UP_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(("laptop",), ("What screen size do you prefer?", "How important is battery life?")),
    KeywordRule(("desktop",), (
        "Do you need a pre-built or custom configuration?",
        "What software will you be running?",
    )),
    KeywordRule(("server",), (
        "How many users will access this server?",
        "What type of data will you be storing?",
    )),
)

# First match wins, so "laptop" outranks "budget" in "I need a budget laptop".
FALLBACK_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(
        ("laptop",),
        ("XPS laptops", "Budget laptops", "Gaming laptops", "Business laptops"),
        clause="For laptops, I recommend checking out our XPS, Inspiron, and Latitude series. ",
    ),
    KeywordRule(
        ("desktop",),
        ("OptiPlex desktops", "Gaming desktops", "Workstations", "All-in-one PCs"),
        clause="For desktops, consider our OptiPlex, Precision, and Alienware series. ",
    ),
    KeywordRule(
        ("monitor",),
        ("UltraSharp monitors", "Gaming monitors", "4K monitors", "Portable monitors"),
        clause="We have a great selection of monitors including UltraSharp, gaming, and portable options. ",
    ),
    KeywordRule(
        ("budget", "cheap"),
        ("Budget laptops", "Dell Outlet", "Student discounts", "Refurbished PCs"),
        clause="For budget-friendly options, check out our Inspiron series and Dell Outlet for refurbished deals. ",
    ),
)

FALLBACK_OPENING = "I'm having trouble reaching our assistant right now, but I can still help you find Dell products! "
FALLBACK_CLOSING = "Use the search bar to find specific products, or ask me again in a moment for more detailed assistance."
GENERIC_FALLBACK_SUGGESTIONS: Tuple[str, ...] = (
    "Search for laptops", "Find gaming computers", "Browse monitors", "Look for accessories",
)
FALLBACK_FOLLOW_UPS: Tuple[str, ...] = (
    "What's your primary use case?",
    "What's your budget range?",
    "Any specific requirements?",
)

GENERIC_CHAT_SUGGESTIONS: Tuple[str, ...] = ("Compare products", "View all laptops", "Check deals")


@dataclass(frozen=True)
class FallbackResponse:
    """Fixed-form reply used when the completion service is unavailable."""
    message: str
    suggestions: Tuple[str, ...]
    follow_up_questions: Tuple[str, ...]
    matched_keywords: Tuple[str, ...] = ()


def _unique(items: Iterable[str], limit: int) -> List[str]:
    """De-duplicate preserving first occurrence, then truncate."""
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen[:limit]


def _collect(rules: Tuple[KeywordRule, ...], text: Optional[str]) -> List[str]:
    collected: List[str] = []
    for rule in rules:
        if rule.matches(text):
            collected.extend(rule.payload)
    return collected


def derive_suggestions(reply_text: str, query_text: Optional[str] = None) -> List[str]:
    """
    Suggest follow-on searches from the reply and the current query.

    Returns an empty list when no rule matches; callers pick their own default.
    """
    items = _collect(REPLY_SUGGESTION_RULES, reply_text) + _collect(QUERY_SUGGESTION_RULES, query_text)
    return _unique(items, MAX_SUGGESTIONS)


def derive_follow_ups(reply_text: str, query_text: Optional[str], is_first_user_turn: bool) -> List[str]:
    """Clarifying questions to keep the conversation moving, at most three."""
    items: List[str] = list(FIRST_TURN_QUESTIONS) if is_first_user_turn else []
    items += _collect(REPLY_FOLLOW_UP_RULES, reply_text)
    items += _collect(QUERY_FOLLOW_UP_RULES, query_text)
    return _unique(items, MAX_FOLLOW_UPS)


def first_matching_rule(rules: Tuple[KeywordRule, ...], text: Optional[str]) -> Optional[KeywordRule]:
    for rule in rules:
        if rule.matches(text):
            return rule
    return None


def fallback_response(user_text: str) -> FallbackResponse:
    """Build the degraded reply: one clause from the first matching rule, or the generic list."""
    rule = first_matching_rule(FALLBACK_RULES, user_text)
    if rule is None:
        return FallbackResponse(
            message=FALLBACK_OPENING + FALLBACK_CLOSING,
            suggestions=GENERIC_FALLBACK_SUGGESTIONS,
            follow_up_questions=FALLBACK_FOLLOW_UPS,
        )
    return FallbackResponse(
        message=FALLBACK_OPENING + rule.clause + FALLBACK_CLOSING,
        suggestions=rule.payload,
        follow_up_questions=FALLBACK_FOLLOW_UPS,
        matched_keywords=rule.keywords,
    )


def chat_suggestions(reply_text: str, query_text: Optional[str]) -> List[str]:
    """Suggestions for session-less replies, padded with generic entries when sparse."""
    suggestions = derive_suggestions(reply_text, query_text)
    if len(suggestions) < 3:
        suggestions = _unique(suggestions + list(GENERIC_CHAT_SUGGESTIONS), MAX_SUGGESTIONS)
    return suggestions
