"""Client for the structured-extraction service, with bounded retry.

Free text and/or an image are sent to a Generative Language
``generateContent`` endpoint together with a response schema listing every
canonical field. The client never raises for service failures: callers get an
``ExtractionSuccess`` or an ``ExtractionFailure`` and treat the latter as zero
records.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx

from .config_loader import ExtractionConfig
from .exceptions import ExtractionError
from .models import FIELD_IDS, WIRE_KEYS, CanonicalRecord

logger = logging.getLogger(__name__)

WIRE_FIELDS: List[str] = [WIRE_KEYS[field_id] for field_id in FIELD_IDS]

PROMPT_TEMPLATE = (
    "You are a data extraction bot. Extract political contact information from the "
    "following text (which may come from an image) and return it as a JSON array. "
    "Each object in the array must have the following keys: {keys}.\n\n"
    "If a key's value is not present in the text, use an empty string. Put multiple "
    "mobile numbers into 'mobilePhone1', 'mobilePhone2' and 'mobilePhone3'. Use the "
    "keys exactly as given.\n\n"
    "Here is the text to parse:\n{text}"
)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class ExtractionSuccess:
    records: List[CanonicalRecord] = field(default_factory=list)
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ExtractionFailure:
    reason: str
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return False

    @property
    def records(self) -> List[CanonicalRecord]:
        return []


ExtractionResult = Union[ExtractionSuccess, ExtractionFailure]


def response_schema() -> Dict[str, Any]:
    return {
        "type": "ARRAY",
        "items": {
            "type": "OBJECT",
            "properties": {key: {"type": "STRING"} for key in WIRE_FIELDS},
            "required": list(WIRE_FIELDS),
        },
    }


def build_payload(
    text: str = "", image: Optional[Union[bytes, str]] = None, mime_type: str = "image/png"
) -> Dict[str, Any]:
    prompt = PROMPT_TEMPLATE.format(
        keys=", ".join(f"'{key}'" for key in WIRE_FIELDS), text=text or ""
    )
    parts: List[Dict[str, Any]] = [{"text": prompt}]
    if image:
        data = image if isinstance(image, str) else base64.b64encode(image).decode("ascii")
        parts.append({"inlineData": {"mimeType": mime_type, "data": data}})
    return {
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": response_schema(),
        },
    }


def parse_response(body: Any) -> List[CanonicalRecord]:
    """Turn a ``generateContent`` response body into canonical records."""
    try:
        json_text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ExtractionError("AI response format is unexpected.") from exc
    try:
        items = json.loads(json_text)
    except (TypeError, ValueError) as exc:
        raise ExtractionError(f"AI response is not valid JSON: {exc}") from exc
    if not isinstance(items, list):
        raise ExtractionError("AI response is not a JSON array.")

    records: List[CanonicalRecord] = []
    for item in items:
        if not isinstance(item, dict):
            logger.debug("Skipping non-object extraction item: %r", item)
            continue
        payload: Dict[str, Any] = {key: "" for key in WIRE_FIELDS}
        payload.update(item)
        records.append(CanonicalRecord.from_mapping(payload))
    return records


class ExtractionClient:
    """Async client for the extraction service.

    Args:
        config: Endpoint, model, retry bound and backoff base.
        api_key: Overrides the key read from ``config.api_key_env``.
        transport: Optional ``httpx`` transport, used by tests.
        sleep: Awaitable used between attempts (defaults to ``asyncio.sleep``).
    """

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.config = config or ExtractionConfig()
        self.api_key = api_key if api_key is not None else self.config.api_key
        self._transport = transport
        self._sleep = sleep or asyncio.sleep

    @property
    def url(self) -> str:
        return f"{self.config.endpoint}/models/{self.config.model}:generateContent"

    def backoff(self, attempt: int) -> float:
        """Delay in seconds after failed attempt ``attempt`` (1-based)."""
        return self.config.base_delay * (2 ** attempt)

    async def _attempt(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> List[CanonicalRecord]:
        response = await client.post(self.url, params={"key": self.api_key}, json=payload)
        response.raise_for_status()
        return parse_response(response.json())

    async def extract(
        self,
        text: str = "",
        image: Optional[Union[bytes, str]] = None,
        mime_type: str = "image/png",
    ) -> ExtractionResult:
        if not self.api_key:
            reason = (
                f"No API key configured for the extraction service "
                f"(set {self.config.api_key_env})."
            )
            logger.warning(reason)
            return ExtractionFailure(reason=reason, attempts=0)

        payload = build_payload(text, image, mime_type)
        max_attempts = self.config.max_attempts
        last_error = ""
        async with httpx.AsyncClient(
            transport=self._transport, timeout=self.config.timeout
        ) as client:
            for attempt in range(1, max_attempts + 1):
                try:
                    records = await self._attempt(client, payload)
                except (httpx.HTTPError, ValueError, ExtractionError) as exc:
                    last_error = str(exc) or type(exc).__name__
                    if attempt >= max_attempts:
                        break
                    wait = self.backoff(attempt)
                    logger.warning(
                        "AI processing failed, retrying in %.1fs (attempt %d/%d): %s",
                        wait,
                        attempt,
                        max_attempts,
                        last_error,
                    )
                    await self._sleep(wait)
                    continue
                logger.info("Extracted %d record(s) in %d attempt(s)", len(records), attempt)
                return ExtractionSuccess(records=records, attempts=attempt)

        logger.warning("Extraction failed after %d attempt(s): %s", max_attempts, last_error)
        return ExtractionFailure(reason=last_error, attempts=max_attempts)

    def extract_sync(
        self,
        text: str = "",
        image: Optional[Union[bytes, str]] = None,
        mime_type: str = "image/png",
    ) -> ExtractionResult:
        return asyncio.run(self.extract(text=text, image=image, mime_type=mime_type))
