"""
LLM Service: one interface for all text generation calls.

Routes calls to the configured provider (OpenAI, Anthropic, Google).
The primary entry point is `call()`.

Each call is attempted exactly once. Callers own the fallback path, which
keeps per-turn latency bounded.
"""

import json
import time
from typing import Dict, Any, Optional
from openai import OpenAI, OpenAIError
from google import genai
import logging

logger = logging.getLogger(__name__)


class LLMServiceError(Exception):
    """Custom exception for LLM service errors"""
    pass


class LLMService:
    """
    Service for making LLM API calls with error handling.

    `provider` and `model_id` are required and usually come from Settings.
    """

    def __init__(
        self,
        *,
        provider: str,
        model_id: str,
        api_key: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        timeout: int = 30,
        max_tokens: int = 1024,
    ):
        self.provider = provider
        self.model_id = model_id
        self.timeout = timeout
        self.max_tokens = max_tokens

        self.client = OpenAI(api_key=api_key) if api_key else None

        if gemini_api_key:
            self.gemini_client = genai.Client(api_key=gemini_api_key)
            self.has_gemini = True
        else:
            self.has_gemini = False

        self.anthropic_adapter = None
        if anthropic_api_key:
            from shared.services.anthropic_adapter import AnthropicAdapter
            self.anthropic_adapter = AnthropicAdapter(
                api_key=anthropic_api_key, timeout=timeout, model=model_id
            )

    # ─── Primary entry point ───────────────────────────────────────────

    def call(
        self,
        prompt: str,
        json_mode: bool = False,
        temperature: float = 0.7,
    ) -> Dict[str, Any]:
        """
        Generic LLM call; routes to the correct API based on self.provider.

        Always returns: {output_text: str, reasoning: str|None}
        """
        if self.provider == "anthropic":
            return self._call_anthropic(prompt, json_mode, temperature)
        elif self.provider == "google":
            text = self._call_gemini(prompt, temperature=temperature, json_mode=json_mode)
            return {"output_text": text, "reasoning": None}
        else:
            text = self._call_chat_completions(prompt, temperature=temperature, json_mode=json_mode)
            return {"output_text": text, "reasoning": None}

    # ─── OpenAI Chat Completions API ─────────────────────────────────

    def _call_chat_completions(
        self,
        prompt: str,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        """Call OpenAI Chat Completions. Returns raw text."""
        if self.client is None:
            raise LLMServiceError("OpenAI API key not configured")

        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "starting",
            "model": self.model_id,
            "params": {"json_mode": json_mode, "temperature": temperature}
        }))

        def _api_call():
            kwargs = {
                "model": self.model_id,
                "messages": [{"role": "user", "content": prompt}],
                "max_completion_tokens": self.max_tokens,
                "temperature": temperature,
                "timeout": self.timeout,
            }
            if json_mode:
                kwargs["response_format"] = {"type": "json_object"}
            response = self.client.chat.completions.create(**kwargs)
            return response.choices[0].message.content or ""

        return self._execute_once(_api_call, self.model_id)

    # ─── Anthropic ────────────────────────────────────────────────────

    def _call_anthropic(
        self,
        prompt: str,
        json_mode: bool = False,
        temperature: float = 0.7,
    ) -> Dict[str, Any]:
        """Call Anthropic Claude via the adapter."""
        if not self.anthropic_adapter:
            raise LLMServiceError("Anthropic adapter not configured (missing API key)")
        return self._execute_once(
            lambda: self.anthropic_adapter.call_sync(
                prompt=prompt, json_mode=json_mode, temperature=temperature
            ),
            f"Anthropic-{self.model_id}",
        )

    # ─── Gemini ───────────────────────────────────────────────────────

    def _call_gemini(
        self,
        prompt: str,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        """Call Google Gemini. Returns raw text."""
        if not self.has_gemini:
            raise LLMServiceError("Gemini API key not configured")

        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "starting",
            "model": self.model_id,
            "params": {"temperature": temperature}
        }))

        def _api_call():
            config = {"temperature": temperature, "max_output_tokens": self.max_tokens}
            if json_mode:
                config["response_mime_type"] = "application/json"
            response = self.gemini_client.models.generate_content(
                model=self.model_id, contents=prompt, config=config
            )
            return response.text or ""

        return self._execute_once(_api_call, f"Gemini-{self.model_id}")

    # ─── Helpers ──────────────────────────────────────────────────────

    def _execute_once(self, api_call_fn, model_name: str) -> Any:
        """Execute a single API call, logging outcome and normalizing errors."""
        start_time = time.time()
        try:
            result = api_call_fn()
        except LLMServiceError:
            raise
        except OpenAIError as e:
            self._log_failure(model_name, e, start_time)
            raise LLMServiceError(f"{model_name} API error: {str(e)}") from e
        except Exception as e:
            self._log_failure(model_name, e, start_time)
            raise LLMServiceError(f"{model_name} unexpected error: {str(e)}") from e

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "complete",
            "model": model_name,
            "output": {"response_length": len(str(result)) if result else 0},
            "duration_ms": duration_ms,
        }))
        return result

    @staticmethod
    def _log_failure(model_name: str, error: Exception, start_time: float) -> None:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(json.dumps({
            "step": "LLM_CALL",
            "status": "failed",
            "model": model_name,
            "error": str(error),
            "duration_ms": duration_ms,
        }))
