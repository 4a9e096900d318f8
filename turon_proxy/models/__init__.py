"""
Remote model layer: prediction jobs, the Replicate client, prompts and replies.
"""

from .normalizer import normalize_reply
from .prediction import PredictionJob, PredictionStatus
from .prompting import build_prompt
from .replicate_client import PredictionProvider, ReplicateClient

__all__ = [
    "normalize_reply",
    "PredictionJob",
    "PredictionStatus",
    "build_prompt",
    "PredictionProvider",
    "ReplicateClient",
]
