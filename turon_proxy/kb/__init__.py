"""
Knowledge Base implementation for static facts and quick answers.
"""

from .knowledge_base import KnowledgeBase, DEFAULT_FACTS
from .models import KnowledgeFacts, Reply

__all__ = ["KnowledgeBase", "DEFAULT_FACTS", "KnowledgeFacts", "Reply"]
