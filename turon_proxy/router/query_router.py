"""
Query Router for deciding how a question gets answered.
"""

import logging
from typing import Optional
from dataclasses import dataclass
from enum import Enum

from ..kb.knowledge_base import KnowledgeBase
from .topic_filter import TopicFilter

logger = logging.getLogger(__name__)


DEFAULT_REFUSAL = (
    "Kechirasiz, men faqat Turon O'quv Markazi bilan bog'liq savollarga javob bera olaman. "
    "Iltimos, kurslar, jadval, manzil yoki aloqa haqida so'rang."
)


class Route(Enum):
    """Ways a question can be answered."""
    REFUSE = "refuse"  # off-topic, fixed refusal
    LOCAL = "local"  # quick answer from the Knowledge Base
    REMOTE = "remote"  # prediction API


@dataclass
class RoutingDecision:
    """Result of query routing decision."""
    route: Route
    reason: str
    answer: Optional[str] = None


class QueryRouter:
    """Routes a question to a refusal, a quick answer, or the remote model."""

    def __init__(
        self,
        topic_filter: TopicFilter,
        knowledge_base: KnowledgeBase,
        refusal: Optional[str] = None,
    ):
        self.topic_filter = topic_filter
        self.knowledge_base = knowledge_base
        self.refusal = refusal or DEFAULT_REFUSAL

    def route_query(self, query: str) -> RoutingDecision:
        """
        Route a query to the appropriate answer source.

        Args:
            query: The user's natural language query

        Returns:
            RoutingDecision; REFUSE and LOCAL decisions carry the answer text
        """
        if not self.topic_filter.is_in_scope(query):
            logger.info("Query is out of scope, refusing")
            return RoutingDecision(
                route=Route.REFUSE,
                reason="No domain keyword matched",
                answer=self.refusal,
            )

        quick = self.knowledge_base.quick_answer(query)
        if quick:
            logger.info("Query answered from the knowledge base")
            return RoutingDecision(
                route=Route.LOCAL,
                reason="Quick answer keyword matched",
                answer=quick,
            )

        logger.info("Query routed to the remote model")
        return RoutingDecision(route=Route.REMOTE, reason="In scope without a quick answer")
