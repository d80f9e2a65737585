"""
Relay-side usage accounting reported in ``done`` events and blocking replies.
Counts are estimates (about four characters per token), not provider billing.
"""

import json
import math
from typing import Dict, List, Tuple

from ..chat.usage import Usage

CHARS_PER_TOKEN = 4

# (input, output) price per 1K tokens
RELAY_RATES: Dict[str, Tuple[float, float]] = {
    "gemini": (0.0005, 0.0010),
    "openai": (0.0010, 0.0020),
}


def relay_usage(messages: List[Dict[str, str]], content: str, model: str) -> Usage:
    """
    Estimate tokens and cost of one relay call.

    Args:
        messages: The turns sent to the provider
        content: The generated answer
        model: Selectable model identifier

    Returns:
        Usage covering prompt and answer
    """
    input_rate, output_rate = RELAY_RATES.get(model, RELAY_RATES["gemini"])
    prompt = json.dumps(messages, ensure_ascii=False, separators=(",", ":"))
    input_tokens = math.ceil(len(prompt) / CHARS_PER_TOKEN)
    output_tokens = math.ceil(len(content) / CHARS_PER_TOKEN)
    cost = (input_tokens / 1000) * input_rate + (output_tokens / 1000) * output_rate
    return Usage(tokens=input_tokens + output_tokens, cost=cost)
