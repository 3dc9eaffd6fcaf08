"""
Anthropic (Claude) Adapter

Maps the LLMService call interface onto the Anthropic Messages API.

Handles:
- JSON mode -> system prompt instruction
- Temperature passthrough
- Response parsing into the standard {output_text, reasoning, parsed} dict
"""

import json
import logging
from typing import Dict, Any

import anthropic

logger = logging.getLogger(__name__)

DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5"

JSON_ONLY_INSTRUCTION = (
    "You MUST respond with valid JSON only. No markdown, no explanation outside the JSON."
)


class AnthropicAdapter:
    """Adapter that translates LLMService calls to Anthropic's Messages API."""

    def __init__(self, api_key: str, timeout: int = 30, model: str = DEFAULT_CLAUDE_MODEL, max_tokens: int = 1024):
        self.model = model
        self.max_tokens = max_tokens
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout)

    def _build_kwargs(
        self,
        prompt: str,
        json_mode: bool = False,
        temperature: float = 0.7,
    ) -> Dict[str, Any]:
        """Build kwargs for anthropic messages.create()."""
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if json_mode:
            kwargs["system"] = JSON_ONLY_INSTRUCTION
        return kwargs

    def _parse_response(self, response: Any, json_mode: bool = False) -> Dict[str, Any]:
        """Parse Anthropic response into standard {output_text, reasoning, parsed} dict."""
        output_text = ""
        reasoning_str = None

        for block in response.content:
            if block.type == "thinking":
                reasoning_str = block.thinking
            elif block.type == "text":
                output_text += block.text

        parsed = None
        if json_mode and output_text:
            try:
                parsed = json.loads(output_text)
            except json.JSONDecodeError:
                logger.warning("Claude returned non-JSON output in JSON mode")

        return {
            "output_text": output_text,
            "reasoning": reasoning_str,
            "parsed": parsed,
        }

    def call_sync(
        self,
        prompt: str,
        json_mode: bool = False,
        temperature: float = 0.7,
    ) -> Dict[str, Any]:
        """Sync call to Claude, returning the standard output dict."""
        kwargs = self._build_kwargs(prompt, json_mode, temperature)
        response = self.client.messages.create(**kwargs)
        return self._parse_response(response, json_mode)
