"""
Provider adapters for the chat models.

Each adapter takes the normalized message list ({"role", "content"} dicts),
translates it into its SDK's request shape and returns plain dicts, so the
service layer never touches SDK response objects.
"""
import logging
from typing import Any, Dict, Iterator, List, Optional

import anthropic
import google.generativeai as genai
from openai import OpenAI

from planforge.config import settings

logger = logging.getLogger(__name__)


class BaseProvider:
    provider_name = ""

    def __init__(self, api_key: str, config: Dict[str, Any]):
        self.api_key = api_key
        self.config = config

    def complete(self, messages: List[Dict[str, str]], max_tokens: int, temperature: float) -> Dict[str, Any]:
        """Return {"content", "prompt_tokens", "completion_tokens", "finish_reason"}."""
        raise NotImplementedError

    def stream(self, messages: List[Dict[str, str]], max_tokens: int, temperature: float) -> Iterator[Dict[str, Any]]:
        """Yield {"text": ...} deltas, then one {"done": True, "prompt_tokens", "completion_tokens"}."""
        raise NotImplementedError


def build_transcript(messages: List[Dict[str, str]]) -> str:
    """Flatten a conversation into a User:/Assistant: transcript. System messages are dropped."""
    lines = []
    for message in messages:
        if message["role"] == "system":
            continue
        speaker = "User" if message["role"] == "user" else "Assistant"
        lines.append(f"{speaker}: {message['content']}")
    return "\n".join(lines)


def split_system_prompt(messages: List[Dict[str, str]]):
    """Return (first system message content or None, remaining user/assistant messages)."""
    system = next((m["content"] for m in messages if m["role"] == "system"), None)
    rest = [{"role": m["role"], "content": m["content"]} for m in messages if m["role"] != "system"]
    return system, rest


class GeminiProvider(BaseProvider):
    provider_name = "Google"

    def _model(self, max_tokens: int, temperature: float):
        genai.configure(api_key=self.api_key)
        return genai.GenerativeModel(
            model_name=self.config["name"],
            generation_config={
                "max_output_tokens": max_tokens,
                "temperature": temperature,
                "top_p": self.config.get("top_p"),
                "top_k": self.config.get("top_k"),
            },
        )

    @staticmethod
    def _usage(response) -> Dict[str, int]:
        usage = getattr(response, "usage_metadata", None)
        return {
            "prompt_tokens": getattr(usage, "prompt_token_count", 0) or 0,
            "completion_tokens": getattr(usage, "candidates_token_count", 0) or 0,
        }

    def complete(self, messages, max_tokens, temperature):
        model = self._model(max_tokens, temperature)
        response = model.generate_content(build_transcript(messages))
        return {
            "content": response.text,
            "finish_reason": "stop",
            **self._usage(response),
        }

    def stream(self, messages, max_tokens, temperature):
        model = self._model(max_tokens, temperature)
        response = model.generate_content(build_transcript(messages), stream=True)
        for chunk in response:
            text = getattr(chunk, "text", "")
            if text:
                yield {"text": text}
        yield {"done": True, **self._usage(response)}


class OpenAIProvider(BaseProvider):
    provider_name = "OpenAI"

    def __init__(self, api_key: str, config: Dict[str, Any]):
        super().__init__(api_key, config)
        self.client = OpenAI(api_key=api_key, timeout=settings.ai_request_timeout)

    def _params(self, messages, max_tokens, temperature) -> Dict[str, Any]:
        return {
            "model": self.config["name"],
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
            "max_tokens": max_tokens,
            "temperature": temperature,
            "top_p": self.config.get("top_p", 1.0),
            "presence_penalty": self.config.get("presence_penalty", 0),
            "frequency_penalty": self.config.get("frequency_penalty", 0),
        }

    def complete(self, messages, max_tokens, temperature):
        response = self.client.chat.completions.create(**self._params(messages, max_tokens, temperature))
        choice = response.choices[0]
        return {
            "content": choice.message.content or "",
            "finish_reason": choice.finish_reason or "stop",
            "prompt_tokens": response.usage.prompt_tokens if response.usage else 0,
            "completion_tokens": response.usage.completion_tokens if response.usage else 0,
        }

    def stream(self, messages, max_tokens, temperature):
        stream = self.client.chat.completions.create(
            **self._params(messages, max_tokens, temperature),
            stream=True,
            stream_options={"include_usage": True},
        )
        prompt_tokens = completion_tokens = 0
        for chunk in stream:
            if chunk.usage:
                prompt_tokens = chunk.usage.prompt_tokens
                completion_tokens = chunk.usage.completion_tokens
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield {"text": delta}
        yield {"done": True, "prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens}


class ClaudeProvider(BaseProvider):
    provider_name = "Anthropic"

    def __init__(self, api_key: str, config: Dict[str, Any]):
        super().__init__(api_key, config)
        self.client = anthropic.Anthropic(api_key=api_key, timeout=settings.ai_request_timeout)

    def _params(self, messages, max_tokens, temperature) -> Dict[str, Any]:
        system, rest = split_system_prompt(messages)
        params = {
            "model": self.config["name"],
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": rest,
        }
        if system:
            params["system"] = system
        return params

    def complete(self, messages, max_tokens, temperature):
        response = self.client.messages.create(**self._params(messages, max_tokens, temperature))
        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        return {
            "content": text,
            "finish_reason": response.stop_reason or "stop",
            "prompt_tokens": response.usage.input_tokens,
            "completion_tokens": response.usage.output_tokens,
        }

    def stream(self, messages, max_tokens, temperature):
        events = self.client.messages.create(**self._params(messages, max_tokens, temperature), stream=True)
        prompt_tokens = completion_tokens = 0
        for event in events:
            if event.type == "message_start":
                prompt_tokens = event.message.usage.input_tokens
            elif event.type == "content_block_delta" and event.delta.type == "text_delta":
                yield {"text": event.delta.text}
            elif event.type == "message_delta" and getattr(event, "usage", None):
                completion_tokens = event.usage.output_tokens
            elif event.type == "message_stop":
                break
        yield {"done": True, "prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens}


PROVIDER_CLASSES = {
    "gemini": GeminiProvider,
    "chatgpt": OpenAIProvider,
    "claude": ClaudeProvider,
}


def create_provider(model: str, api_key: str, config: Dict[str, Any]) -> Optional[BaseProvider]:
    provider_class = PROVIDER_CLASSES.get(model)
    if provider_class is None:
        return None
    logger.debug(f"Creating {provider_class.provider_name} provider for {config['name']}")
    return provider_class(api_key, config)
