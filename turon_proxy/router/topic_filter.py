"""
Topic Filter for deciding whether a question is about the learning centre.
"""

import logging
import re
from typing import Dict, Any, List, Optional, Pattern

logger = logging.getLogger(__name__)


DEFAULT_PATTERNS = [
    r"kurs", r"yo'nalish", r"dars", r"jadval", r"manzil", r"telefon",
    r"raqam", r"aloqa", r"ish vaqti", r"soat", r"o'qituvchi", r"turon",
]

DEFAULT_KEYWORDS = [
    "kurs", "manzil", "telefon", "ish vaqti", "dasturlash",
    "ingliz", "matematika", "fizika", "kompyuter",
]


class TopicFilter:
    """Keyword classifier for in-domain questions. No scoring, first match wins."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}

        self.patterns: List[Pattern[str]] = [
            re.compile(pattern) for pattern in self.config.get("patterns", DEFAULT_PATTERNS)
        ]
        self.keywords: List[str] = [
            keyword.lower() for keyword in self.config.get("keywords", DEFAULT_KEYWORDS)
        ]

    def is_in_scope(self, question: Optional[str]) -> bool:
        """
        Check whether a question belongs to the centre's domain.

        Args:
            question: The user's question, possibly empty

        Returns:
            True if any pattern or keyword matches the lower-cased question
        """
        if not question:
            return False

        text = question.lower()

        for pattern in self.patterns:
            if pattern.search(text):
                return True

        for keyword in self.keywords:
            if keyword in text:
                return True

        return False
