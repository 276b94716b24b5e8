"""
RAGRefine Chat - LLM Client
Async wrapper around an OpenAI-compatible chat/completions endpoint.
Returns router metadata read from the transport headers alongside every
response.
"""

import json
import os
from dataclasses import dataclass
from typing import Optional

from openai import AsyncOpenAI

from ragrefine_chat import config
from ragrefine_chat.orchestrator.contracts import RouterMetadata

GENERATION_PARAMETERS = ("stop", "temperature", "top_p", "frequency_penalty", "presence_penalty")


def _llm_debug_enabled():
    return os.getenv("LLM_DEBUG", "").lower() in ("1", "true", "yes")


@dataclass
class CompletionResult:
    """A completion (or stream) plus the router metadata of that one call."""
    response: object
    router_metadata: Optional[RouterMetadata] = None


class LLMClient:

    def __init__(self, model: str = None, api_key: str = None, base_url: str = None, default_headers: dict = None):
        self.model = model or config.LLM_MODEL
        self.client = AsyncOpenAI(
            api_key=api_key or config.OPENAI_API_KEY,
            base_url=base_url or config.OPENAI_BASE_URL,
            default_headers=default_headers if default_headers is not None else config.get_default_headers(),
        )

    # ---------------------------------------------------------
    # Debug logging helpers
    # ---------------------------------------------------------
    def _debug_log_input(self, method: str, kwargs: dict):
        if not _llm_debug_enabled():
            return
        import sys
        def _safe(text: str) -> str:
            enc = sys.stdout.encoding or "utf-8"
            return text.encode(enc, errors="replace").decode(enc)
        messages = kwargs.get("messages", [])
        try:
            print(f"\n{'='*70}")
            print(f"[LLM INPUT] method={method}  model={kwargs.get('model')}  stream={kwargs.get('stream')}")
            print(f"{'='*70}")
            print(f"[TOOLS] {len(kwargs.get('tools') or [])} available")
            print(f"\n[MESSAGES] ({len(messages)} messages)")
            for i, msg in enumerate(messages):
                role = msg.get("role", "?")
                content = msg.get("content") or ""
                if msg.get("tool_calls"):
                    content = json.dumps(msg["tool_calls"], ensure_ascii=False)
                elif isinstance(content, list):
                    content = str(content)
                print(f"  [{i}] {role}: {_safe(content)}")
            print(f"{'='*70}\n")
        except UnicodeEncodeError:
            print(f"[LLM INPUT] method={method} (debug log truncated: encoding error)")

    def _debug_log_output(self, method: str, content, router_metadata: RouterMetadata = None):
        if not _llm_debug_enabled():
            return
        import sys
        enc = sys.stdout.encoding or "utf-8"
        def _safe(text: str) -> str:
            return text.encode(enc, errors="replace").decode(enc)
        try:
            print(f"\n{'-'*70}")
            print(f"[LLM OUTPUT] method={method}")
            if router_metadata:
                print(f"  router: {router_metadata.to_dict()}")
            print(f"{'-'*70}")
            print(_safe(str(content)[:8000]))
            print(f"{'-'*70}\n")
        except UnicodeEncodeError:
            print(f"[LLM OUTPUT] method={method} (debug log truncated: encoding error)")

    # ---------------------------------------------------------
    # Request assembly
    # ---------------------------------------------------------
    def build_request_kwargs(
        self,
        messages: list,
        tools: list = None,
        stream: bool = True,
        generate_settings: dict = None,
    ) -> dict:
        """
        Merge model defaults with per-request settings into create() kwargs.

        Request settings override MODEL_PARAMETERS; unset values are left out
        of the body entirely.
        """
        parameters = {**config.MODEL_PARAMETERS, **(generate_settings or {})}

        kwargs = {"model": self.model, "messages": messages, "stream": stream}
        if parameters.get("max_tokens") is not None:
            token_field = "max_completion_tokens" if config.USE_COMPLETION_TOKENS else "max_tokens"
            kwargs[token_field] = parameters["max_tokens"]
        for key in GENERATION_PARAMETERS:
            if parameters.get(key) is not None:
                kwargs[key] = parameters[key]
        if tools:
            kwargs["tools"] = tools
        return kwargs

    @staticmethod
    def build_request_headers(conversation_id: str = None, token: str = None) -> dict:
        headers = {
            "ChatUI-Conversation-ID": conversation_id or "",
            "X-use-cache": "false",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    # ---------------------------------------------------------
    # Completion interface (for orchestrator)
    # ---------------------------------------------------------
    async def create_chat_completion(
        self,
        messages: list,
        tools: list = None,
        stream: bool = True,
        generate_settings: dict = None,
        conversation_id: str = None,
        token: str = None,
    ) -> CompletionResult:
        """
        Issue one chat completion request.

        Returns:
            CompletionResult whose `response` is a ChatCompletion, or an
            async iterable of chunks when stream=True.
        """
        kwargs = self.build_request_kwargs(messages, tools, stream, generate_settings)
        self._debug_log_input("create_chat_completion", kwargs)

        raw = await self.client.chat.completions.with_raw_response.create(
            **kwargs,
            extra_headers=self.build_request_headers(conversation_id, token),
            extra_body=dict(config.OPENAI_EXTRA_BODY) or None,
        )
        router_metadata = RouterMetadata.from_headers(raw.headers)
        if router_metadata:
            print(f"  [LLM] Router metadata: {router_metadata.to_dict()}")

        response = raw.parse()
        if not stream:
            self._debug_log_output("create_chat_completion", response, router_metadata)
        return CompletionResult(response=response, router_metadata=router_metadata)


_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get (or create) the process-wide LLM client."""
    global _client
    if _client is None:
        _client = LLMClient()
    return _client
