"""Moderation endpoint (``v1/moderations``)."""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .transport import Transport

logger = logging.getLogger(__name__)

MODERATIONS_PATH = "v1/moderations"
DEFAULT_MODERATION_MODEL = "omni-moderation-latest"


class ModerationResult(BaseModel):
    """Verdict for one input."""

    model_config = ConfigDict(extra="allow")

    flagged: bool = False
    categories: dict[str, bool] = Field(default_factory=dict)
    category_scores: dict[str, float] = Field(default_factory=dict)

    @property
    def flagged_categories(self) -> list[str]:
        return sorted(name for name, hit in self.categories.items() if hit)


class ModerationResponse(BaseModel):
    id: str = ""
    model: str = ""
    results: list[ModerationResult] = Field(default_factory=list)


class ModerationService:
    def __init__(self, transport: Transport):
        self._transport = transport

    def check(
        self,
        input: str | list[Any],
        model: str = DEFAULT_MODERATION_MODEL,
    ) -> ModerationResult:
        """Classify ``input``. A list input yields one result merged over all items.

        Example:
            result = client.moderation.check("some text")
            if result.flagged:
                print(result.flagged_categories)
        """
        data = self._transport.request(
            "POST", MODERATIONS_PATH, {"input": input, "model": model}
        )
        response = ModerationResponse.model_validate(data)
        if not response.results:
            return ModerationResult()
        if len(response.results) == 1:
            return response.results[0]

        merged = ModerationResult(flagged=any(r.flagged for r in response.results))
        for result in response.results:
            for name, hit in result.categories.items():
                merged.categories[name] = merged.categories.get(name, False) or hit
            for name, score in result.category_scores.items():
                merged.category_scores[name] = max(merged.category_scores.get(name, 0.0), score)
        if merged.flagged:
            logger.debug(f"Moderation flagged: {', '.join(merged.flagged_categories)}")
        return merged
