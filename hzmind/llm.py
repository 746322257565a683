"""OpenAI-compatible chat client and token counting."""

import json
import logging
import urllib.error
import urllib.request
from functools import lru_cache

import tiktoken

from .errors import RemoteError, ValidationError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 120
FALLBACK_ENCODING = "cl100k_base"


def api_base(url: str) -> str:
    """Strip a trailing /chat/completions so both endpoint and base URLs work."""
    return url.rstrip("/").removesuffix("/chat/completions")


@lru_cache(maxsize=16)
def _encoding_for(model: str):
    try:
        return tiktoken.encoding_for_model(model)
    except KeyError:
        return tiktoken.get_encoding(FALLBACK_ENCODING)


def count_tokens(text: str, model: str = "") -> int:
    """Count tokens with the model's encoding, cl100k_base when it is unknown."""
    return len(_encoding_for(model or "").encode(text, disallowed_special=()))


class LLMClient:
    """Thin wrapper over litellm (chat) and the /models endpoint (urllib)."""

    def __init__(self, timeout: int = REQUEST_TIMEOUT):
        self.timeout = timeout

    def send_message(self, url: str, model: str, api_key: str, messages: list[dict]) -> str:
        """Send the full history and return the first choice's content."""
        if not url:
            raise ValidationError("api url is not set")
        if not model:
            raise ValidationError("no model selected (use /model <name>)")
        if not api_key:
            raise ValidationError("api token is not set")

        import litellm

        litellm.suppress_debug_info = True

        logger.info("sending %d message(s) to %s (model=%s)", len(messages), url, model)
        try:
            response = litellm.completion(
                model=f"openai/{model}",
                messages=messages,
                api_base=api_base(url),
                api_key=api_key,
                timeout=self.timeout,
            )
        except Exception as e:
            raise RemoteError(f"LLM call failed: {e}") from e

        choices = getattr(response, "choices", None)
        if not choices:
            raise RemoteError("no choices in response")
        message = getattr(choices[0], "message", None)
        if message is None:
            raise RemoteError("malformed response: choice has no message")
        content = getattr(message, "content", None)
        return content or ""

    def list_models(self, url: str, api_key: str) -> list[str]:
        models_url = api_base(url) + "/models"
        logger.info("fetching available models from %s", models_url)
        req = urllib.request.Request(
            models_url, headers={"Authorization": f"Bearer {api_key}"}
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace")
            raise RemoteError(f"API error: {e.code} {e.reason} - {detail}") from e
        except urllib.error.URLError as e:
            raise RemoteError(f"could not connect to {models_url}: {e.reason}") from e
        except OSError as e:
            raise RemoteError(f"request to {models_url} failed: {e}") from e

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise RemoteError(f"invalid JSON from {models_url}: {e}") from e
        entries = data.get("data") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise RemoteError(f"malformed response from {models_url}: missing 'data' list")
        return [e["id"] for e in entries if isinstance(e, dict) and "id" in e]
