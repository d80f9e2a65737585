"""
Usage Estimator - local token/cost estimate for the blocking exchange path.
"""

import math
from dataclasses import dataclass
from typing import Dict, Union

from ..models.chat import AIModel

MIN_TOKENS = 5

# Price per estimated token
MODEL_RATES: Dict[str, float] = {
    AIModel.OPENAI.value: 0.0005,
    AIModel.GEMINI.value: 0.0003,
}


@dataclass(frozen=True)
class Usage:
    tokens: int
    cost: float

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(tokens=self.tokens + other.tokens, cost=self.cost + other.cost)


def rate(model: Union[str, AIModel]) -> float:
    key = model.value if isinstance(model, AIModel) else model
    try:
        return MODEL_RATES[key]
    except KeyError:
        raise ValueError(f"No rate configured for model: {key}") from None


def estimate(text: str, model: Union[str, AIModel]) -> Usage:
    """
    Estimate the token count and cost of ``text`` on ``model``.

    Tokens are ``max(5, ceil(len(text) / 2))`` so even a trivial message
    is billed.
    """
    tokens = max(MIN_TOKENS, math.ceil(len(text) / 2))
    return Usage(tokens=tokens, cost=tokens * rate(model))
