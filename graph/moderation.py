"""
Moderation gate: checks the latest user message before any tool runs.
Uses the OpenAI moderation endpoint; fails open (logs) when the endpoint is unreachable.
"""
import logging
from typing import Optional

import openai

from tools.base import ModerationResult

logger = logging.getLogger(__name__)

DENIAL_MESSAGE = "Your message violates our guidelines. I can't answer that."


class ModerationGate:
    def __init__(self, client: Optional[openai.OpenAI] = None, model: str = "omni-moderation-latest"):
        self._client = client
        self.model = model

    def _get_client(self) -> openai.OpenAI:
        if self._client is None:
            self._client = openai.OpenAI()
        return self._client

    def check(self, text: Optional[str]) -> ModerationResult:
        text = (text or "").strip()
        if not text:
            return ModerationResult(flagged=False)
        try:
            response = self._get_client().moderations.create(model=self.model, input=text[:8000])
        except Exception as e:
            logger.warning("Moderation unavailable, allowing message: %s", str(e)[:200])
            return ModerationResult(flagged=False)

        result = response.results[0]
        if not result.flagged:
            return ModerationResult(flagged=False)
        categories = [name for name, hit in result.categories.model_dump().items() if hit]
        logger.info("Message flagged by moderation: %s", ",".join(categories))
        return ModerationResult(flagged=True, categories=categories, denial_message=DENIAL_MESSAGE)
