from __future__ import annotations

import json
import logging
from typing import Optional, Protocol

from openai import AsyncOpenAI, OpenAIError

from doodle.domain.common.errors import ClassifierUnavailable

logger = logging.getLogger(__name__)

PROMPT = (
    "This is a quick doodle from a drawing game. "
    "Reply with JSON {\"answer\": \"<word>\"} where <word> is the single "
    "English noun that best describes what is drawn."
)


class Classifier(Protocol):
    async def classify(self, image: str) -> Optional[str]:
        """Best-guess label for an encoded image, or None when there is none."""
        ...


def _parse_answer(text: str) -> Optional[str]:
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = "\n".join(l for l in cleaned.splitlines() if not l.strip().startswith("```")).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start != -1 and end > start:
        try:
            data = json.loads(cleaned[start : end + 1])
        except ValueError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("answer"), str):
            return data["answer"].strip() or None
    return cleaned.split()[0].strip(".,!\"'") if cleaned else None


class OpenAIClassifier:
    """
    Vision classification through the OpenAI chat API.
    Any failure (network, timeout, refusal, unparseable reply) is reported as
    ClassifierUnavailable; callers cannot tell the kinds apart.
    """

    def __init__(self, api_key: str, model: str = "gpt-4o", timeout: float = 30.0, client: Optional[AsyncOpenAI] = None):
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    async def classify(self, image: str) -> Optional[str]:
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": PROMPT},
                            {"type": "image_url", "image_url": {"url": image}},
                        ],
                    }
                ],
                max_tokens=20,
            )
        except OpenAIError as e:
            raise ClassifierUnavailable(str(e)) from e

        if not resp.choices:
            return None
        return _parse_answer(resp.choices[0].message.content or "")
