from __future__ import annotations  # LLM request gateway module

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import httpx
from pydantic import BaseModel, Field

from config import LlmRoute


logger = logging.getLogger(__name__)  # Module logger setup


_MODEL_LOCKS: Dict[str, threading.Lock] = {}
_MODEL_LOCKS_GUARD = threading.Lock()


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


class LlmTimeoutError(LlmGatewayError):  # Upstream call exceeded the route timeout
    pass


class Prompt(BaseModel):  # System instruction plus role-tagged chat messages
    system: str
    messages: List[Dict[str, str]] = Field(default_factory=list)


def _lock_for(cfg: LlmRoute) -> threading.Lock:
    key = cfg.name or f"{cfg.base_url}{cfg.endpoint}"
    with _MODEL_LOCKS_GUARD:
        lock = _MODEL_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _MODEL_LOCKS[key] = lock
    return lock


def complete(
    prompt: Prompt,
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
) -> str:  # Send one completion request and return the raw text reply
    def _execute() -> str:
        messages = _normalize_messages(prompt.messages)
        payload = _build_payload(cfg, prompt.system, messages)
        headers = _build_headers(cfg)
        preview = _preview(messages) or _preview([{"content": prompt.system}])
        if len(preview) > 120:
            preview = preview[:117] + "..."
        logger.info(
            "LLM request send route=%s provider=%s model=%s preview=%s",
            cfg.name,
            cfg.provider,
            cfg.model,
            preview,
        )
        try:
            response, close_cb = _post(f"{cfg.base_url}{cfg.endpoint}", payload, headers, cfg.timeout_s, client)
        except httpx.TimeoutException as exc:
            logger.error("LLM request timed out after %.1fs", cfg.timeout_s)
            raise LlmTimeoutError(f"LLM request timed out after {cfg.timeout_s:.0f}s") from exc
        except Exception as exc:  # noqa: BLE001
            logger.error("LLM transport failure: %s", exc)
            raise LlmGatewayError("LLM transport failed") from exc
        try:
            if response.status_code >= 400:
                logger.error("LLM error status: %s body=%s", response.status_code, _clip(response.text, 200))
                raise LlmGatewayError(f"LLM returned status {response.status_code}")
            try:
                data = response.json()
            except Exception as exc:  # noqa: BLE001
                logger.error("Invalid JSON payload from LLM: %s", exc)
                raise LlmGatewayError("LLM payload was not JSON") from exc
        finally:
            _close_safely(close_cb)
        content = _extract_content(cfg, data).strip()
        if not content:
            raise LlmGatewayError("LLM returned an empty response")
        logger.info("LLM request done route=%s model=%s chars=%d", cfg.name, cfg.model, len(content))
        return content

    if cfg.sequential:
        lock = _lock_for(cfg)
        with lock:
            return _execute()
    return _execute()


def _build_payload(cfg: LlmRoute, system: str, messages: List[Dict[str, str]]) -> Dict[str, Any]:  # Provider-specific request body
    if cfg.provider == "anthropic":
        return {
            "model": cfg.model,
            "max_tokens": cfg.max_tokens,
            "system": system,
            "messages": _anthropic_messages(messages),
            "temperature": cfg.temperature,
        }
    return {
        "model": cfg.model,
        "messages": [{"role": "system", "content": system}, *messages],
        "temperature": cfg.temperature,
    }


def _build_headers(cfg: LlmRoute) -> Dict[str, str]:  # Auth and content headers per provider
    headers = {"Content-Type": "application/json"}
    if cfg.provider == "anthropic":
        headers["x-api-key"] = cfg.api_key
    else:
        headers["Authorization"] = f"Bearer {cfg.api_key}"
    headers.update(cfg.extra_headers)
    return headers


def _anthropic_messages(messages: List[Dict[str, str]]) -> List[Dict[str, str]]:  # Merge consecutive roles, open with a user turn
    merged: List[Dict[str, str]] = []
    for message in messages:
        if merged and merged[-1]["role"] == message["role"]:
            merged[-1] = {"role": message["role"], "content": merged[-1]["content"] + "\n\n" + message["content"]}
            continue
        merged.append(dict(message))
    if not merged or merged[0]["role"] != "user":
        merged.insert(0, {"role": "user", "content": "Begin."})
    return merged


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        response = client.post(url, json=payload, headers=headers, timeout=timeout)
        return response, None
    http_client = httpx.Client(timeout=timeout)
    try:
        response = http_client.post(url, json=payload, headers=headers)
    except Exception:
        http_client.close()
        raise
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _normalize_messages(messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:  # Ensure message payload shape
    normalized: List[Dict[str, str]] = []
    for item in messages:
        if not isinstance(item, dict):
            raise TypeError("Each chat message must be a dict with role/content")
        role = str(item.get("role", "")).strip()
        content = str(item.get("content", ""))
        if role not in {"user", "assistant"}:
            raise ValueError(f"Unsupported chat role: {role!r}")
        if not content.strip():
            continue
        normalized.append({"role": role, "content": content})
    return normalized


def _preview(messages: Sequence[Dict[str, str]]) -> str:  # Build preview string for logging
    for message in reversed(messages):
        text = message.get("content", "").strip()
        if text:
            return text.splitlines()[0]
    return ""


def _clip(text: str, limit: int) -> str:
    text = (text or "").strip()
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _extract_content(cfg: LlmRoute, data: Any) -> str:  # Extract reply text from provider response
    if isinstance(data, dict):
        if cfg.provider == "anthropic":
            blocks = data.get("content")
            if isinstance(blocks, list):
                parts = [
                    block.get("text", "")
                    for block in blocks
                    if isinstance(block, dict) and block.get("type", "text") == "text"
                ]
                text = "".join(part for part in parts if isinstance(part, str))
                if text:
                    return text
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
        if isinstance(data.get("content"), str):
            return data["content"]
    raise LlmGatewayError("LLM response missing content")
