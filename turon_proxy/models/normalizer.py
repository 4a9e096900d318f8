"""
Reply Normalizer: turns a finished prediction into display text.
"""

import json
from typing import Any

from .prediction import PredictionJob, Structured, Text, TextList

DEFAULT_SEPARATOR = "\n"


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)


def normalize_reply(job: PredictionJob, separator: str = DEFAULT_SEPARATOR) -> str:
    """
    Convert a prediction's output into a single string.

    Args:
        job: A prediction job, normally a succeeded one
        separator: Joins list outputs

    Returns:
        Non-empty text; never raises
    """
    output = job.output

    if isinstance(output, TextList):
        text = separator.join(output.items)
    elif isinstance(output, Text):
        text = output.value
    elif isinstance(output, Structured):
        text = _dump(output.value)
    else:
        text = ""

    if text:
        return text

    # Absent or empty output: show the whole job so nothing is silently lost
    return _dump(job.raw or {"id": job.id, "status": job.status.value})
