"""
Prompt construction for the remote model.
"""

import json

from ..kb.models import KnowledgeFacts

PROMPT_TEMPLATE = (
    "Siz {name} chatbotisiz. Foydalanuvchining savoliga faqat markaz haqidagi "
    "ma'lumotlar doirasida javob bering.\n\n"
    "Markaz ma'lumotlari:\n{facts}\n\n"
    "Savol: {question}\n"
    "Javob:"
)


def build_prompt(question: str, facts: KnowledgeFacts, max_question_chars: int = 1000) -> str:
    """Render the instruction template around the centre's facts and the question.

    The question is truncated and embedded as a JSON string literal, so quotes and
    newlines in user text stay inside the quoted block.
    """
    question = question.strip()[:max_question_chars]
    return PROMPT_TEMPLATE.format(
        name=facts.name,
        facts=json.dumps(facts.to_dict(), ensure_ascii=False),
        question=json.dumps(question, ensure_ascii=False),
    )
