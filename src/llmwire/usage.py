"""Token counting and cost estimation backed by litellm's tokenizers and price map."""

import logging
from typing import Any

import litellm

logger = logging.getLogger(__name__)


def count_tokens(
    model: str,
    text: str | None = None,
    messages: list[dict[str, Any]] | None = None,
) -> int:
    """Count tokens of ``text`` or chat ``messages`` with the model's tokenizer.

    Example:
        count_tokens("gpt-4o-mini", text="Hello there")
        count_tokens("gpt-4o-mini", messages=[{"role": "user", "content": "Hi"}])
    """
    if text is None and messages is None:
        raise ValueError("pass text or messages")
    if messages is not None:
        return litellm.token_counter(model=model, messages=messages)
    return litellm.token_counter(model=model, text=text)


def _pricing(model: str) -> dict[str, Any] | None:
    prices = litellm.model_cost
    return prices.get(model) or prices.get(model.split("/", 1)[-1])


def estimate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """Estimated USD cost. Unknown models cost 0.0 (with a warning)."""
    pricing = _pricing(model)
    if pricing is None:
        logger.warning(f"No pricing known for model {model!r}, assuming zero cost")
        return 0.0
    return (
        prompt_tokens * (pricing.get("input_cost_per_token") or 0.0)
        + completion_tokens * (pricing.get("output_cost_per_token") or 0.0)
    )


def trim_messages(
    messages: list[dict[str, Any]],
    model: str,
    max_tokens: int,
) -> list[dict[str, Any]]:
    """Drop the oldest non-system messages until the conversation fits ``max_tokens``.

    System messages are always kept, and so is the newest other message even if
    the result still exceeds the budget.
    """
    system = [m for m in messages if m.get("role") == "system"]
    rest = [m for m in messages if m.get("role") != "system"]

    dropped = 0
    while len(rest) > 1 and count_tokens(model, messages=system + rest) > max_tokens:
        rest.pop(0)
        dropped += 1

    if dropped:
        logger.debug(f"Trimmed {dropped} message(s) to fit {max_tokens} tokens")
    # Preserve the original relative order of system messages and the rest
    kept = {id(m) for m in system + rest}
    return [m for m in messages if id(m) in kept]
