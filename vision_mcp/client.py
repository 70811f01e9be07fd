"""Client for OpenAI-compatible chat completion APIs that accept images."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx

REQUEST_TIMEOUT = 120.0
_ERROR_BODY_LIMIT = 200


@dataclass(frozen=True)
class Config:
    """Connection and default settings for the vision API."""

    base_url: str
    api_key: str
    model: str
    max_tokens: int = 0


@dataclass(frozen=True)
class AnalysisResult:
    """The model's answer together with token usage."""

    text: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0


class VisionAPIError(Exception):
    """Raised when the vision API cannot be reached or answers unusably."""


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _field(obj: Any, key: str, kind: type, default: Any) -> Any:
    if not isinstance(obj, dict):
        raise VisionAPIError(f"parsing response: expected an object holding {key!r}")
    value = obj.get(key)
    if value is None:
        return default
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise VisionAPIError(
            f"parsing response: field {key!r} has unexpected type {type(value).__name__}"
        )
    return value


class VisionClient:
    """Sends images to a chat completions endpoint and returns the reply."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self._http = httpx.Client(timeout=REQUEST_TIMEOUT)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> VisionClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def endpoint(self) -> str:
        return self.config.base_url.rstrip("/") + "/chat/completions"

    def _payload(self, data_url: str, question: str, detail: str, tokens: int) -> dict:
        text_part: dict[str, Any] = {"type": "text"}
        if question:
            text_part["text"] = question
        image_url: dict[str, Any] = {"url": data_url}
        if detail:
            image_url["detail"] = detail
        payload: dict[str, Any] = {
            "model": self.config.model,
            "messages": [
                {
                    "role": "user",
                    "content": [text_part, {"type": "image_url", "image_url": image_url}],
                }
            ],
        }
        if tokens:
            payload["max_tokens"] = tokens
        return payload

    def analyze(
        self, data_url: str, question: str, detail: str, max_tokens: int = 0
    ) -> AnalysisResult:
        """Ask the model about an image given as a data URL or HTTP(S) URL.

        A positive ``max_tokens`` overrides the configured default.
        """
        tokens = max_tokens if max_tokens > 0 else self.config.max_tokens
        payload = self._payload(data_url, question, detail, tokens)
        headers = {"Authorization": f"Bearer {self.config.api_key}"}

        try:
            response = self._http.post(self.endpoint, json=payload, headers=headers)
        except httpx.InvalidURL as exc:
            raise VisionAPIError(f"creating request: {exc}") from exc
        except httpx.HTTPError as exc:
            raise VisionAPIError(f"calling vision API: {exc}") from exc

        if response.status_code != 200:
            raise VisionAPIError(
                f"vision API returned status {response.status_code}: "
                f"{_truncate(response.text, _ERROR_BODY_LIMIT)}"
            )

        try:
            body = json.loads(response.content)
        except ValueError as exc:
            raise VisionAPIError(f"parsing response: {exc}") from exc

        model = _field(body, "model", str, "")
        choices = _field(body, "choices", list, [])
        usage = _field(body, "usage", dict, {})
        prompt_tokens = _field(usage, "prompt_tokens", int, 0)
        completion_tokens = _field(usage, "completion_tokens", int, 0)

        if not choices:
            raise VisionAPIError("vision API returned no choices")

        message = _field(choices[0] or {}, "message", dict, {})
        text = _field(message, "content", str, "")
        if not text:
            raise VisionAPIError("vision API returned empty response content")

        return AnalysisResult(
            text=text,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )