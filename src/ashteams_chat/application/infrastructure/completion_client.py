"""Client for the hosted chat-completion API (OpenRouter, OpenAI-compatible).

Every request is prefixed with a persona system prompt so replies always
present the configured assistant identity and never name the model behind it.
Two call styles are supported:

- ``complete()`` — one request, returns the text of the first choice.
- ``stream()``   — async generator of text fragments decoded from the
  provider's ``data: <json>`` / ``data: [DONE]`` event stream.

No retries are attempted; every failure is raised once as a
``CompletionError`` subclass.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

import httpx
from loguru import logger

from ashteams_chat.application.exceptions import ConfigurationError, UpstreamError
from ashteams_chat.config import Settings
from ashteams_chat.domain.models import ChatMessage

# ---------------------------------------------------------------------------
# System prompt
# ---------------------------------------------------------------------------

SYSTEM_PROMPT_TEMPLATE = """\
You are {persona_name}, an intelligent assistant created by {persona_owner}. \
You are helpful, knowledgeable, and professional. Never mention or reveal that \
you are powered by {underlying_model} or any other underlying model. \
Always present yourself as {persona_name}."""

STREAM_DATA_PREFIX = "data: "
STREAM_DONE_TOKEN = "[DONE]"


def build_system_prompt(persona_name: str, persona_owner: str, underlying_model: str) -> str:
    """Render the identity-masking system prompt."""
    return SYSTEM_PROMPT_TEMPLATE.format(
        persona_name=persona_name,
        persona_owner=persona_owner,
        underlying_model=underlying_model,
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class CompletionClient:
    """Thin async wrapper around ``POST {base_url}/chat/completions``.

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient``; its lifetime is owned by the caller.
    api_key:
        Provider credential. An empty key makes every call raise
        ``ConfigurationError`` before any network I/O.
    system_prompt:
        Prepended to every conversation as a ``system`` message.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        api_key: str,
        system_prompt: str,
        base_url: str = "https://openrouter.ai/api/v1",
        model: str = "microsoft/phi-4",
        temperature: float = 0.7,
        max_tokens: int = 2048,
        timeout_seconds: float = 60.0,
        site_url: str = "http://localhost:5000",
        site_title: str = "Ashteams AI",
    ) -> None:
        self.http_client = http_client
        self.api_key = api_key
        self.system_prompt = system_prompt
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = httpx.Timeout(timeout_seconds)
        self.site_url = site_url
        self.site_title = site_title

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> CompletionClient:
        return cls(
            http_client,
            api_key=settings.openrouter_api_key,
            system_prompt=build_system_prompt(
                settings.persona_name,
                settings.persona_owner,
                settings.underlying_model_label,
            ),
            base_url=settings.openrouter_base_url,
            model=settings.completion_model,
            temperature=settings.completion_temperature,
            max_tokens=settings.completion_max_tokens,
            timeout_seconds=settings.completion_timeout_seconds,
            site_url=settings.site_url,
            site_title=settings.site_title,
        )

    # ------------------------------------------------------------------
    # Public API — single shot
    # ------------------------------------------------------------------

    async def complete(self, messages: list[ChatMessage]) -> str:
        """Submit the conversation and return the first choice's text.

        Raises:
            ConfigurationError: If no API key is configured.
            UpstreamError: On transport failure, a non-2xx status, or a
                response without any choices.
        """
        self._require_api_key()

        try:
            response = await self.http_client.post(
                self._endpoint,
                headers=self._headers(),
                json=self._payload(messages),
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("Completion request failed: {}", exc)
            raise UpstreamError(f"Completion request failed: {exc}") from exc

        if not response.is_success:
            raise self._status_error(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError("Completion response is not valid JSON", response.status_code) from exc

        choices = (data.get("choices") if isinstance(data, dict) else None) or []
        if not choices:
            raise UpstreamError("No response from completion provider", response.status_code)

        try:
            content = choices[0]["message"]["content"]
        except (KeyError, TypeError) as exc:
            raise UpstreamError("Malformed completion choice", response.status_code) from exc
        if not isinstance(content, str):
            raise UpstreamError("Completion choice has no text content", response.status_code)
        return content

    # ------------------------------------------------------------------
    # Public API — streaming
    # ------------------------------------------------------------------

    async def stream(self, messages: list[ChatMessage]) -> AsyncIterator[str]:
        """Yield text fragments as the provider produces them.

        The generator ends at ``data: [DONE]``; anything after it is
        discarded. Records that are not valid JSON are skipped. The HTTP
        response is closed on every exit path, including when the consumer
        stops iterating early and calls ``aclose()``.

        Raises:
            ConfigurationError: If no API key is configured.
            UpstreamError: If the transport fails or the status is non-2xx.
        """
        self._require_api_key()

        try:
            async with self.http_client.stream(
                "POST",
                self._endpoint,
                headers=self._headers(),
                json=self._payload(messages, stream=True),
                timeout=self.timeout,
            ) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise self._status_error(response.status_code, body)

                buffer = ""
                async for text in response.aiter_text():
                    buffer += text
                    *lines, buffer = buffer.split("\n")
                    for line in lines:
                        done, fragment = self._decode_line(line)
                        if done:
                            return
                        if fragment:
                            yield fragment

                # Stream closed without a trailing newline
                done, fragment = self._decode_line(buffer)
                if fragment and not done:
                    yield fragment
        except httpx.HTTPError as exc:
            logger.error("Completion stream failed: {}", exc)
            raise UpstreamError(f"Completion stream failed: {exc}") from exc

    @staticmethod
    def _decode_line(line: str) -> tuple[bool, str | None]:
        """Decode one event-stream line into ``(is_done, fragment)``."""
        line = line.rstrip("\r")
        if not line.startswith(STREAM_DATA_PREFIX):
            return False, None

        data = line[len(STREAM_DATA_PREFIX):]
        if data == STREAM_DONE_TOKEN:
            return True, None

        try:
            parsed = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("Skipping unparseable stream record: {}", data[:80])
            return False, None

        try:
            content = parsed["choices"][0]["delta"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError):
            return False, None
        return False, content or None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def _endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise ConfigurationError("OpenRouter API key is not configured")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.site_url,
            "X-Title": self.site_title,
        }

    def _payload(self, messages: list[ChatMessage], stream: bool = False) -> dict:
        conversation = [ChatMessage(role="system", content=self.system_prompt), *messages]
        payload: dict = {
            "model": self.model,
            "messages": [m.model_dump() for m in conversation],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if stream:
            payload["stream"] = True
        return payload

    @staticmethod
    def _status_error(status_code: int, body: str) -> UpstreamError:
        logger.error("Completion provider returned {}: {}", status_code, body[:200])
        return UpstreamError(
            f"Completion provider error: {status_code} - {body}",
            status_code=status_code,
            body=body,
        )
