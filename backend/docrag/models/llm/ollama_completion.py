# backend/docrag/models/llm/ollama_completion.py

from __future__ import annotations
from typing import Iterator, List, Optional
import json, time, requests, logging

from docrag.core.entities import ChatMessage
from docrag.core.errors import CompletionError
from docrag.core.ports.completion import ICompletionService
from docrag.core.services.prompts import build_system_prompt
from docrag.models.embedding.ollama_embedding import resolve_ollama_host

logger = logging.getLogger("docrag.llm.ollama")


def _ollama_options(options: Optional[dict]) -> dict:
    """Map pipeline option names onto Ollama's."""
    options = options or {}
    out = {}
    if "temperature" in options:
        out["temperature"] = options["temperature"]
    if "top_p" in options:
        out["top_p"] = options["top_p"]
    if "max_tokens" in options:
        out["num_predict"] = options["max_tokens"]
    return out


class OllamaCompletion(ICompletionService):
    """Completion + chat streaming against a local Ollama server."""

    def __init__(
        self,
        host: str | None = None,
        model: str = "llama3.2:3b",
        timeout: float = 180.0,
        session: requests.Session | None = None,
    ):
        self.host = resolve_ollama_host(host)
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def check_connectivity(self) -> bool:
        try:
            r = self.session.get(f"{self.host}/api/tags", timeout=5)
            r.raise_for_status()
            models = [m.get("model") or m.get("name") for m in r.json().get("models", [])]
            logger.info(f"✅ Ollama reachable at {self.host}")
            if self.model not in models:
                logger.warning(f"⚠️ Generation model '{self.model}' not registered. Available: {models}")
            return True
        except requests.RequestException as e:
            logger.error(f"❌ Cannot contact Ollama generation service: {e}")
            return False

    def _post(self, path: str, payload: dict) -> dict:
        url = f"{self.host}{path}"
        for attempt in range(2):
            try:
                r = self.session.post(url, json=payload, timeout=self.timeout)
                if r.status_code == 404:
                    raise CompletionError(f"404: model '{self.model}' not registered in Ollama.")
                r.raise_for_status()
                return r.json()
            except requests.RequestException as e:
                if attempt == 0:
                    logger.warning(f"⚠️ Ollama request to {path} failed ({e}); retrying...")
                    time.sleep(1.0)
                    continue
                raise CompletionError(f"Ollama request to {path} failed: {e}") from e

    def complete(self, prompt: str) -> str:
        data = self._post("/api/generate", {"model": self.model, "prompt": prompt, "stream": False})
        return data.get("response") or ""

    def _chat_payload(self, messages: List[ChatMessage], system_prompt: str, options, stream: bool) -> dict:
        return {
            "model": self.model,
            "messages": [{"role": "system", "content": system_prompt}]
            + [{"role": m.role, "content": m.content} for m in messages],
            "options": _ollama_options(options),
            "stream": stream,
        }

    def complete_chat(
        self, messages: List[ChatMessage], system_prompt: str, options: Optional[dict] = None
    ) -> str:
        data = self._post("/api/chat", self._chat_payload(messages, system_prompt, options, False))
        return (data.get("message") or {}).get("content") or ""

    def stream_chat(
        self, messages: List[ChatMessage], context: str, options: Optional[dict] = None
    ) -> Iterator[str]:
        payload = self._chat_payload(messages, build_system_prompt(context), options, True)
        try:
            r = self.session.post(f"{self.host}/api/chat", json=payload, timeout=self.timeout, stream=True)
            r.raise_for_status()
        except requests.RequestException as e:
            raise CompletionError(f"Ollama streaming request failed: {e}") from e
        return self._iter_stream(r)

    def _iter_stream(self, r: requests.Response) -> Iterator[str]:
        with r:
            for line in r.iter_lines():
                if not line:
                    continue
                try:
                    obj = json.loads(line.decode("utf-8"))
                except json.JSONDecodeError:
                    logger.debug(f"Skipping malformed stream line: {line[:80]!r}")
                    continue
                chunk = (obj.get("message") or {}).get("content") or ""
                if chunk:
                    yield chunk
                if obj.get("done"):
                    break
