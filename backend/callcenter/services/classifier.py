"""Classification adapter for the external text-completion provider."""

import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from callcenter.config import get_settings
from callcenter.errors import ClassificationUnavailable
from callcenter.models import Unit, Urgency

logger = logging.getLogger(__name__)
settings = get_settings()

CLASSIFICATION_PROMPT = """You are an emergency dispatch assistant. You will receive the description \
of an emergency call. Do two things:
1. Classify the urgency as: Red (very urgent), Yellow (urgent), Green (not urgent)
2. Name the most suitable responder unit among: Ambulance, Police, Fire Department
Answer with exactly this format:
URGENCY: <colour>
UNIT: <unit>"""

REFORMULATION_PROMPT = """You will receive the description of an emergency in natural language. \
Rewrite it in a technical, short and precise way, suitable for emergency operators. \
Answer ONLY with the new sentence, in the same language as the description. \
Do not include explanations."""

URGENCY_RE = re.compile(r"URGENCY:\s*(Red|Yellow|Green)", re.IGNORECASE)
UNIT_RE = re.compile(r"UNIT:\s*(Ambulance|Police|Fire\s?Department)", re.IGNORECASE)

_URGENCY_LOOKUP = {u.value.lower(): u for u in Urgency}
_UNIT_LOOKUP = {
    "ambulance": Unit.AMBULANCE,
    "police": Unit.POLICE,
    "fire department": Unit.FIRE_DEPARTMENT,
    "firedepartment": Unit.FIRE_DEPARTMENT,
}


@dataclass(frozen=True)
class ClassificationResult:
    """
    Outcome of classifying one report.

    Unset fields are None; the caller applies its own defaults.
    `classified` is False when the classification call failed or nothing in
    its answer could be parsed.
    """

    urgency: Urgency | None = None
    unit: Unit | None = None
    reformulated_text: str | None = None
    classified: bool = False


def parse_classification(text: str) -> tuple[Urgency | None, Unit | None]:
    """Extract urgency and unit from a classification answer. Never raises."""
    urgency = None
    unit = None

    urgency_match = URGENCY_RE.search(text or "")
    if urgency_match:
        urgency = _URGENCY_LOOKUP[urgency_match.group(1).lower()]

    unit_match = UNIT_RE.search(text or "")
    if unit_match:
        unit = _UNIT_LOOKUP[" ".join(unit_match.group(1).lower().split())]

    return urgency, unit


def parse_reformulation(text: str) -> str | None:
    """
    Pick the canonical rewrite out of a reformulation answer.

    Reasoning models often prepend their thinking, so the last non-blank
    line wins.
    """
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
    if not lines:
        return None
    return lines[-1]


class TriageClient:
    """
    Client for an OpenAI-compatible chat-completions endpoint.

    Provider failures never propagate out of `classify`; they are logged and
    reported in-band through `ClassificationResult.classified`.
    """

    def __init__(
        self,
        api_url: str = settings.ai_api_url,
        api_key: str | None = settings.ai_api_key,
        model: str = settings.ai_model,
        timeout: float = settings.ai_timeout_seconds,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.transport = transport

        self.headers: dict[str, str] = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

    async def _complete(self, system_prompt: str, description: str, temperature: float) -> str:
        """Run one completion and return the message text."""
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": f'Emergency description: "{description}"'},
            ],
            "temperature": temperature,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, headers=self.headers, json=payload)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            raise ClassificationUnavailable(
                f"Provider returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ClassificationUnavailable(f"Provider request failed: {e!r}") from e
        except ValueError as e:
            raise ClassificationUnavailable("Provider returned a non-JSON body") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ClassificationUnavailable("Provider response has no message content") from e
        if not isinstance(content, str):
            raise ClassificationUnavailable("Provider message content is not text")

        return content.strip()

    async def _classify_urgency(self, description: str) -> tuple[Urgency | None, Unit | None, bool]:
        try:
            text = await self._complete(
                CLASSIFICATION_PROMPT, description, settings.ai_classification_temperature
            )
        except ClassificationUnavailable as e:
            logger.warning(f"Classification unavailable: {e}")
            return None, None, False

        logger.info(f"Classification answer: {text!r}")
        urgency, unit = parse_classification(text)
        if urgency is None and unit is None:
            logger.warning("Classification answer did not match the expected format")
            return None, None, False
        return urgency, unit, True

    async def _reformulate(self, description: str) -> str | None:
        try:
            text = await self._complete(
                REFORMULATION_PROMPT, description, settings.ai_reformulation_temperature
            )
        except ClassificationUnavailable as e:
            logger.warning(f"Reformulation unavailable: {e}")
            return None

        return parse_reformulation(text)

    async def classify(self, description: str) -> ClassificationResult:
        """
        Classify a report and rewrite its description.

        The two provider calls are independent: a failed classification does
        not prevent the reformulation, and vice versa.
        """
        urgency, unit, classified = await self._classify_urgency(description)
        reformulated = await self._reformulate(description)

        return ClassificationResult(
            urgency=urgency,
            unit=unit,
            reformulated_text=reformulated,
            classified=classified,
        )
