"""OpenAI-compatible LLM client used to enhance captured text."""

from __future__ import annotations

import logging
import threading

import httpx

from panggap.config import LLMConfig, SettingsStore
from panggap.errors import ConfigurationMissing, EnhancementFailed

logger = logging.getLogger(__name__)


class LLMClient:
    """Synchronous chat-completion client for any OpenAI-compatible API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the LLM client.

        Args:
            base_url: API base URL (e.g. "https://api.openai.com/v1").
            api_key: API key for the provider.
            timeout: Per-request timeout in seconds, applied by httpx.
            transport: Optional httpx transport (tests use ``MockTransport``).
        """
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def chat(
        self,
        system: str,
        user: str,
        *,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        """Send a chat-completion request and return the assistant content.

        Raises:
            httpx.HTTPStatusError: On 4xx / 5xx responses.
            httpx.TimeoutException: When the request times out.
            KeyError / IndexError / ValueError: If the response body is malformed.
        """
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        response = None
        try:
            response = self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
            return data["choices"][0]["message"]["content"] or ""
        except httpx.HTTPStatusError as exc:
            logger.error(
                "LLM API HTTP error %s: %s", exc.response.status_code, exc.response.text
            )
            raise
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            # ValueError covers json.JSONDecodeError (empty / invalid body)
            body_preview = ""
            if response is not None:
                body_preview = response.text[:500] if response.text else "(empty)"
            logger.error(
                "Malformed LLM response (status %s, body: %s): %s",
                response.status_code if response is not None else "?",
                body_preview,
                exc,
            )
            raise
        except httpx.TimeoutException as exc:
            logger.error("LLM request timed out: %s", exc)
            raise

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()


class TextEnhancer:
    """Enhances text with the model and prompt from the current settings.

    Settings are loaded fresh on every call, so a changed key, model or
    prompt applies to the next hotkey press.  The HTTP client is cached and
    rebuilt only when its connection settings change.
    """

    def __init__(
        self,
        settings: SettingsStore,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._client: LLMClient | None = None
        self._client_key: tuple[str, str, float] | None = None
        self._lock = threading.Lock()

    def enhance(self, text: str) -> str:
        """Return the enhanced version of *text*.

        Raises:
            ConfigurationMissing: If no API key is configured.
            EnhancementFailed: On any transport or response error.
        """
        if not text.strip():
            raise EnhancementFailed("No text provided to enhance")

        cfg = self._settings.load().llm
        if not cfg.api_key:
            logger.warning("Enhancement requested but no API key is configured")
            raise ConfigurationMissing()

        client = self._get_client(cfg)
        logger.info("Enhancing %d chars with %s", len(text), cfg.model)
        try:
            enhanced = client.chat(
                cfg.system_prompt,
                text,
                model=cfg.model,
                temperature=cfg.temperature,
                max_tokens=cfg.max_tokens,
            )
        except httpx.HTTPStatusError as exc:
            raise EnhancementFailed(
                f"Failed to enhance text: {exc.response.status_code} "
                f"{exc.response.reason_phrase}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise EnhancementFailed(
                f"Failed to enhance text: request timed out ({cfg.timeout:g} seconds)"
            ) from exc
        except httpx.HTTPError as exc:
            raise EnhancementFailed(f"Failed to enhance text: {exc}") from exc
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise EnhancementFailed(
                "Failed to enhance text: malformed response from the model"
            ) from exc

        enhanced = enhanced.strip()
        if not enhanced:
            raise EnhancementFailed("Failed to enhance text: No response from the model")
        return enhanced

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
            self._client = None
            self._client_key = None

    def _get_client(self, cfg: LLMConfig) -> LLMClient:
        key = (cfg.base_url, cfg.api_key, cfg.timeout)
        with self._lock:
            if self._client is None or self._client_key != key:
                if self._client is not None:
                    logger.info("LLM settings changed, reinitialising client")
                    self._client.close()
                self._client = LLMClient(
                    base_url=cfg.base_url,
                    api_key=cfg.api_key,
                    timeout=cfg.timeout,
                    transport=self._transport,
                )
                self._client_key = key
            return self._client
