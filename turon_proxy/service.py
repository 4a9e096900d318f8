"""
Request handling for the chat proxy: refusal, quick answer, or remote prediction.
"""

import logging
from typing import Any, Optional

from .config import ProxyConfig
from .errors import BadRequest
from .kb.knowledge_base import KnowledgeBase
from .kb.models import Reply
from .models.normalizer import normalize_reply
from .models.prompting import build_prompt
from .models.replicate_client import PredictionProvider, ReplicateClient
from .router.query_router import QueryRouter, Route
from .router.topic_filter import TopicFilter

logger = logging.getLogger(__name__)


class ChatService:
    """Answers one question per call; holds no per-request state."""

    def __init__(self, config: ProxyConfig, provider: Optional[PredictionProvider] = None):
        self.config = config

        # Initialize components
        self.knowledge_base = KnowledgeBase(config.kb)
        self.topic_filter = TopicFilter(config.topic_filter)
        self.router = QueryRouter(self.topic_filter, self.knowledge_base, refusal=config.refusal)
        self.provider = provider or ReplicateClient(config.replicate)

    async def handle(self, message: Any) -> Reply:
        """
        Process a user message through the answer pipeline.

        Args:
            message: The raw ``message`` value from the request body

        Returns:
            Reply with the answer text and whether it was produced locally or remotely
        """
        if not isinstance(message, str) or not message.strip():
            raise BadRequest("No message provided")

        decision = self.router.route_query(message)
        if decision.route is not Route.REMOTE:
            return Reply(text=decision.answer, source="local")

        prompt = build_prompt(
            message,
            self.knowledge_base.facts,
            max_question_chars=self.config.max_question_chars,
        )
        job = await self.provider.predict(prompt)
        return Reply(
            text=normalize_reply(job, separator=self.config.reply_separator),
            source="remote",
        )

    async def aclose(self):
        await self.provider.aclose()
