"""
Knowledge Base for answering common questions without contacting the model.
"""

import logging
from typing import Dict, Any, List, Optional, Tuple

from .models import KnowledgeFacts

logger = logging.getLogger(__name__)


DEFAULT_FACTS = KnowledgeFacts(
    name="Turon O'quv Markazi",
    address="Marhamat shahri",
    phone="+998 999082703",
    hours="09:00 - 18:00 (Dushanbadan Shanbagacha)",
    courses=(
        "Dasturlash (Python, Java, Flutter)",
        "Ingliz tili",
        "Matematika va fizika",
        "Kompyuter savodxonligi",
    ),
)

COURSES_PREFIX = "Hozirgi yo‘nalishlar: "
COURSES_SEPARATOR = ", "


class KnowledgeBase:
    """Read-only facts about the centre plus the quick answer rules built on them."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.facts = self._load_facts(self.config.get("facts"))

        # Checked in order; the first matching group decides the answer
        self.quick_answer_rules: List[Tuple[str, Tuple[str, ...]]] = [
            ("address", ("manzil", "qaerda", "joylashuv")),
            ("phone", ("telefon", "raqam")),
            ("hours", ("ish vaqti", "soat")),
            ("courses", ("kurs", "yo'nalish", "dasturlash", "ingliz")),
        ]

    def _load_facts(self, facts_config: Optional[Dict[str, Any]]) -> KnowledgeFacts:
        """Build the facts record from config, falling back to the built-in defaults."""
        if not facts_config:
            logger.info("Using built-in knowledge facts")
            return DEFAULT_FACTS

        courses = facts_config.get("courses", DEFAULT_FACTS.courses)
        if isinstance(courses, str):
            courses = [courses]

        facts = KnowledgeFacts(
            name=str(facts_config.get("name", DEFAULT_FACTS.name)),
            address=str(facts_config.get("address", DEFAULT_FACTS.address)),
            phone=str(facts_config.get("phone", DEFAULT_FACTS.phone)),
            hours=str(facts_config.get("hours", DEFAULT_FACTS.hours)),
            courses=tuple(str(course) for course in courses),
        )
        logger.info(f"Loaded knowledge facts for {facts.name} ({len(facts.courses)} courses)")
        return facts

    def quick_answer(self, question: Optional[str]) -> Optional[str]:
        """
        Answer a common question directly from the facts.

        Args:
            question: The user's question

        Returns:
            The matching fact as plain text, or None when the model must answer
        """
        text = (question or "").lower()

        for topic, keywords in self.quick_answer_rules:
            if any(keyword in text for keyword in keywords):
                logger.debug(f"Quick answer matched topic: {topic}")
                return self._render(topic)

        return None

    def _render(self, topic: str) -> str:
        if topic == "courses":
            return COURSES_PREFIX + COURSES_SEPARATOR.join(self.facts.courses)
        return getattr(self.facts, topic)
