"""
Data models for the Knowledge Base module.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any, Tuple


@dataclass(frozen=True)
class KnowledgeFacts:
    """Static facts about the learning centre."""
    name: str
    address: str
    phone: str
    hours: str
    courses: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["courses"] = list(self.courses)
        return data


@dataclass(frozen=True)
class Reply:
    """Final answer returned to the caller."""
    text: str
    source: str  # "local" or "remote"

    def to_dict(self) -> Dict[str, str]:
        return {"reply": self.text, "source": self.source}
