"""Chat-completions client for the planning model."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import openai

from app.core.config import Settings
from app.core.errors import ConfigurationError, UpstreamError
from app.observability.metrics import log_metric, timed
from app.observability.tracing import trace

logger = logging.getLogger(__name__)

Message = Dict[str, str]


class AIClient:
    """Send a role-tagged conversation to an OpenAI-compatible endpoint and return the text.

    Calls are never retried here: a failure is terminal for the generation
    step that issued it, and the caller decides whether to re-trigger.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str],
        model: str,
        base_url: Optional[str] = None,
        timeout_seconds: float = 45.0,
        default_headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.default_headers = dict(default_headers or {})
        self._client: Optional[openai.OpenAI] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIClient":
        return cls(
            api_key=settings.ai_api_key,
            model=settings.ai_model,
            base_url=settings.ai_base_url,
            timeout_seconds=settings.ai_timeout_seconds,
            default_headers={
                "HTTP-Referer": settings.ai_app_url,
                "X-Title": settings.ai_app_title,
            },
        )

    def _get_client(self) -> openai.OpenAI:
        if not self.api_key:
            raise ConfigurationError("AI_API_KEY (or OPENROUTER_API_KEY) is not configured")
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                max_retries=0,
                default_headers=self.default_headers or None,
            )
        return self._client

    def call_model(self, messages: Sequence[Message], *, json_mode: bool = True) -> str:
        """Return the assistant text for `messages`.

        Raises ConfigurationError before any network activity when no key is
        set, and UpstreamError for non-success statuses, timeouts, connection
        failures and empty completions.
        """
        client = self._get_client()
        request: Dict[str, object] = {
            "model": self.model,
            "messages": list(messages),
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        metadata = {"model": self.model, "json_mode": json_mode, "message_count": len(request["messages"])}
        with trace("ai.call_model", metadata=metadata), timed("ai.call_model", {"model": self.model}):
            try:
                completion = client.chat.completions.create(**request)
            except openai.APITimeoutError as exc:
                log_metric("ai.call_model.failure", 1, {"reason": "timeout"})
                raise UpstreamError(
                    f"AI call timed out after {self.timeout_seconds:g}s",
                    status_code=None,
                    body=str(exc),
                ) from exc
            except openai.APIStatusError as exc:
                log_metric("ai.call_model.failure", 1, {"reason": "status", "status_code": exc.status_code})
                body = exc.response.text if exc.response is not None else str(exc)
                raise UpstreamError(
                    f"AI call failed ({exc.status_code})",
                    status_code=exc.status_code,
                    body=body,
                ) from exc
            except openai.APIConnectionError as exc:
                log_metric("ai.call_model.failure", 1, {"reason": "connection"})
                raise UpstreamError("AI backend unreachable", status_code=None, body=str(exc)) from exc

        choices = getattr(completion, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content:
            raise UpstreamError("AI backend returned an empty completion", status_code=None, body=None)

        usage = getattr(completion, "usage", None)
        if usage is not None:
            log_metric("ai.call_model.total_tokens", getattr(usage, "total_tokens", 0) or 0, {"model": self.model})
        logger.debug("AI call returned %d characters", len(content))
        return content


def to_messages(system: str, user: str) -> List[Message]:
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]
