"""Shared LLM calling utilities.

Centralizes every model invocation with two backends:
1. Anthropic API (preferred — uses ANTHROPIC_API_KEY)
2. Subprocess ``claude -p`` (when no key is set or ASKA_USE_CLI=1)

Failures are raised as ``LLMError`` subclasses so callers can tell an empty
response from malformed JSON from a rate limit.
"""

from __future__ import annotations

import json
import logging
import os
import re
import subprocess
from typing import Any

import anthropic

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base error for LLM calls."""

    retryable = False
    error_code: str | None = None


class EmptyResponseError(LLMError):
    """The model returned no text."""


class MalformedResponseError(LLMError):
    """The model returned text that is not the expected JSON envelope."""


class RateLimitError(LLMError):
    """The provider rejected the call for exceeding its rate limit (HTTP 429)."""

    retryable = True
    error_code = "429"


RATE_LIMIT_MESSAGE = (
    "AI provider rate limit exceeded. The service is temporarily unavailable "
    "due to high demand. Please wait and try again."
)

# ---------------------------------------------------------------------------
# Model name mapping
# ---------------------------------------------------------------------------

_MODEL_MAP: dict[str, str] = {
    "sonnet": "claude-sonnet-4-6",
    "haiku": "claude-haiku-4-5-20251001",
    "opus": "claude-opus-4-6",
}

_DEFAULT_MODEL = "claude-sonnet-4-6"


def _resolve_model(model: str | None) -> str:
    """Resolve a short model name to an API model ID."""
    if model is None:
        return _DEFAULT_MODEL
    return _MODEL_MAP.get(model, model)


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

_EMBEDDED_JSON_RE = re.compile(r"\{[\s\S]*\}")


def classify_llm_error(exc: BaseException) -> LLMError:
    """Map an arbitrary provider exception onto the LLMError taxonomy.

    Rate limits are recognised from the SDK type, an HTTP 429 status, or an
    error payload embedded in the message (``{"error": {"code": 429}}`` or
    ``RESOURCE_EXHAUSTED``).
    """
    if isinstance(exc, LLMError) and type(exc) is not LLMError:
        return exc
    if isinstance(exc, anthropic.RateLimitError):
        return RateLimitError(RATE_LIMIT_MESSAGE)
    if getattr(exc, "status_code", None) == 429:
        return RateLimitError(RATE_LIMIT_MESSAGE)
    return _classify_message(str(exc) or "Unknown error occurred")


def _classify_message(message: str) -> LLMError:
    code: str | None = None

    match = _EMBEDDED_JSON_RE.search(message)
    if match:
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            err = payload["error"]
            if err.get("code") is not None:
                code = str(err["code"])
            if code == "429" or err.get("status") == "RESOURCE_EXHAUSTED":
                return RateLimitError(RATE_LIMIT_MESSAGE)
            if err.get("message"):
                message = str(err["message"])

    if "RESOURCE_EXHAUSTED" in message:
        return RateLimitError(RATE_LIMIT_MESSAGE)

    error = LLMError(message)
    error.error_code = code
    return error


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


def _call_anthropic_api(
    prompt: str,
    *,
    api_key: str,
    model: str | None = None,
    timeout: int = 120,
    label: str = "generation",
) -> str:
    """Call Claude via the Anthropic API."""
    client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
    resolved_model = _resolve_model(model)

    logger.debug("Calling Anthropic API model=%s (%s)", resolved_model, label)

    response = client.messages.create(
        model=resolved_model,
        max_tokens=8192,
        messages=[{"role": "user", "content": prompt}],
    )

    text_parts: list[str] = []
    for block in response.content:
        if block.type == "text":
            text_parts.append(block.text)
    return "".join(text_parts).strip()


def _call_subprocess(
    prompt: str,
    *,
    model: str | None = None,
    timeout: int = 120,
    label: str = "generation",
) -> str:
    """Call Claude via subprocess (``claude -p``)."""
    cmd = ["claude", "-p"]
    if model:
        cmd.extend(["--model", model])

    logger.debug("Calling Claude CLI subprocess (%s)", label)

    try:
        result = subprocess.run(
            cmd,
            input=prompt,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise LLMError(f"Claude CLI not found — is 'claude' on the PATH? (label={label})") from exc
    except subprocess.TimeoutExpired as exc:
        raise LLMError(f"Claude CLI timed out after {timeout}s (label={label})") from exc

    if result.returncode != 0:
        raise _classify_message(
            f"Claude CLI failed (exit {result.returncode}, label={label}): {result.stderr[:500]}"
        )

    return result.stdout.strip()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def call_llm(
    prompt: str,
    *,
    model: str | None = None,
    timeout: int = 120,
    use_cli: bool = False,
    label: str = "generation",
) -> str:
    """Send a single-turn prompt and return the response text.

    Args:
        prompt: Full prompt text.
        model: Optional model override (e.g. "sonnet", "haiku").
        timeout: Timeout in seconds.
        use_cli: Force the ``claude -p`` backend.
        label: Label for logging.

    Returns:
        The response text (stripped, never empty).

    Raises:
        EmptyResponseError: The model produced no text.
        RateLimitError: The provider rate-limited the call.
        LLMError: Any other failure.
    """
    use_cli = use_cli or os.environ.get("ASKA_USE_CLI", "").strip() == "1"
    api_key = os.environ.get("ANTHROPIC_API_KEY", "").strip()

    try:
        if api_key and not use_cli:
            text = _call_anthropic_api(
                prompt, api_key=api_key, model=model, timeout=timeout, label=label
            )
        else:
            text = _call_subprocess(prompt, model=model, timeout=timeout, label=label)
    except LLMError:
        raise
    except Exception as exc:
        raise classify_llm_error(exc) from exc

    if not text:
        raise EmptyResponseError(f"The AI failed to generate a response (label={label}).")
    return text


# ---------------------------------------------------------------------------
# JSON output helpers
# ---------------------------------------------------------------------------

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```$")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def clean_json_string(text: str) -> str:
    """Extract and repair a JSON object from model output.

    Takes the span between the first ``{`` and the last ``}``, strips code
    fences, drops trailing commas and stray control characters. Text with no
    object is returned unchanged so ``json.loads`` fails with a clear error.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1:
        return text

    json_text = text[start : end + 1]
    json_text = _FENCE_OPEN_RE.sub("", json_text)
    json_text = _FENCE_CLOSE_RE.sub("", json_text)
    json_text = _TRAILING_COMMA_RE.sub(r"\1", json_text)
    json_text = _CONTROL_CHARS_RE.sub("", json_text)
    return json_text.strip()


def parse_json_object(text: str, *, label: str = "generation") -> dict[str, Any]:
    """Parse model output as a JSON object.

    Raises:
        MalformedResponseError: The text is not a JSON object.
    """
    try:
        parsed = json.loads(clean_json_string(text))
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(
            f"The AI response is not valid JSON (label={label}): {exc}"
        ) from exc
    if not isinstance(parsed, dict):
        raise MalformedResponseError(f"The AI response is not a JSON object (label={label}).")
    return parsed


def generate_items(
    source_text: str,
    prompt_text: str,
    *,
    content_type: str,
    model: str | None = None,
    timeout: int = 120,
    use_cli: bool = False,
) -> list[dict[str, Any]]:
    """Run a generator prompt over source text and return the raw items.

    The model must answer with ``{"items": [...]}``. Each returned item is
    tagged with ``content_type``; non-object entries are passed through as
    empty dicts so normalization rejects them.

    Raises:
        LLMError: On an empty response, malformed JSON, a missing or
            non-array ``items`` field, a rate limit, or any call failure.
    """
    if not source_text or not prompt_text:
        raise LLMError("Source content and custom prompt are required.")

    prompt = f"{prompt_text}\n\nSource Content:\n{source_text}"
    text = call_llm(prompt, model=model, timeout=timeout, use_cli=use_cli, label=content_type)
    envelope = parse_json_object(text, label=content_type)

    items = envelope.get("items")
    if not isinstance(items, list):
        raise MalformedResponseError('The AI response is missing the required "items" array.')

    return [
        {**item, "content_type": content_type} if isinstance(item, dict) else {}
        for item in items
    ]
