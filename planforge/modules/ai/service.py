import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from fastapi import HTTPException

from planforge.config.ai_models import AI_MODEL_CONFIGS, DEFAULT_MODEL, get_api_key
from planforge.modules.ai.providers import BaseProvider, create_provider
from planforge.modules.ai.schemas import (
    ChatRequest, ChatResponse, ModelSelectionCriteria, StreamChunk, Usage
)

logger = logging.getLogger(__name__)

MODEL_TEST_PROMPT = 'Hello! Please respond with "Test successful" to confirm the connection.'


def select_model(criteria: Optional[ModelSelectionCriteria] = None, requested: Optional[str] = None) -> str:
    """Pick a chat model: explicit request first, then capability hints, else the default."""
    if requested:
        return requested
    if criteria is None:
        return DEFAULT_MODEL
    if criteria.requires_mcp:
        return "claude"
    if criteria.needs_creativity:
        return "chatgpt"
    if criteria.cost_priority == "high":
        return "gemini"
    return DEFAULT_MODEL


def calculate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    config = AI_MODEL_CONFIGS[model]
    return (prompt_tokens + completion_tokens) / 1000 * config["cost_per_token"]


def build_usage(model: str, prompt_tokens: int, completion_tokens: int) -> Usage:
    return Usage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
        cost=calculate_cost(model, prompt_tokens, completion_tokens),
    )


class AIService:
    def __init__(self, providers: Optional[Dict[str, BaseProvider]] = None):
        # Preconfigured providers (tests); otherwise built on demand from settings
        self._providers = dict(providers or {})

    def is_available(self, model: str) -> bool:
        if model in self._providers:
            return True
        return bool(get_api_key(model))

    def get_provider(self, model: str) -> BaseProvider:
        if model not in AI_MODEL_CONFIGS:
            raise HTTPException(status_code=400, detail=f"Unsupported model: {model}")
        if model in self._providers:
            return self._providers[model]
        api_key = get_api_key(model)
        if not api_key:
            provider_name = AI_MODEL_CONFIGS[model]["provider"]
            raise HTTPException(status_code=503, detail=f"{provider_name} API key is not configured")
        provider = create_provider(model, api_key, AI_MODEL_CONFIGS[model])
        self._providers[model] = provider
        return provider

    @staticmethod
    def _limits(model: str, request: ChatRequest):
        config = AI_MODEL_CONFIGS[model]
        max_tokens = request.max_tokens if request.max_tokens is not None else config["max_tokens"]
        temperature = request.temperature if request.temperature is not None else config["temperature"]
        return max_tokens, temperature

    @staticmethod
    def _messages(request: ChatRequest) -> List[Dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in request.messages]

    def _complete(self, model: str, request: ChatRequest) -> ChatResponse:
        provider = self.get_provider(model)
        max_tokens, temperature = self._limits(model, request)
        result = provider.complete(self._messages(request), max_tokens, temperature)
        return ChatResponse(
            content=result["content"],
            model=model,
            usage=build_usage(model, result["prompt_tokens"], result["completion_tokens"]),
            finish_reason=result.get("finish_reason"),
        )

    def chat(self, request: ChatRequest, allow_fallback: bool = True) -> ChatResponse:
        """Run a chat completion, falling back to Gemini once if another provider fails."""
        model = select_model(request.criteria, request.model)
        logger.info(f"Chat request: model={model}, messages={len(request.messages)}")
        try:
            response = self._complete(model, request)
        except Exception as e:
            if not allow_fallback or model == DEFAULT_MODEL or not self.is_available(DEFAULT_MODEL):
                if isinstance(e, HTTPException):
                    raise
                logger.error(f"AI request failed for {model}: {e}")
                raise HTTPException(status_code=500, detail=f"AI request failed: {e}")
            logger.warning(f"{model} failed ({e}), falling back to {DEFAULT_MODEL}")
            try:
                response = self._complete(DEFAULT_MODEL, request)
            except HTTPException:
                raise
            except Exception as fallback_error:
                logger.error(f"Fallback to {DEFAULT_MODEL} failed: {fallback_error}")
                raise HTTPException(status_code=500, detail=f"AI request failed: {fallback_error}")
        logger.info(f"Chat response: model={response.model}, total_tokens={response.usage.total_tokens}")
        return response

    def stream_chat(self, request: ChatRequest) -> Iterator[StreamChunk]:
        """Yield text deltas; the final chunk has done=True and carries usage."""
        model = select_model(request.criteria, request.model)
        provider = self.get_provider(model)
        max_tokens, temperature = self._limits(model, request)
        logger.info(f"Streaming chat: model={model}, messages={len(request.messages)}")
        for event in provider.stream(self._messages(request), max_tokens, temperature):
            if event.get("done"):
                yield StreamChunk(
                    done=True,
                    model=model,
                    usage=build_usage(model, event.get("prompt_tokens", 0), event.get("completion_tokens", 0)),
                )
                return
            yield StreamChunk(chunk=event["text"], model=model)

    def available_models(self) -> List[Dict[str, Any]]:
        return [
            {"model": model, "config": config, "available": self.is_available(model)}
            for model, config in AI_MODEL_CONFIGS.items()
        ]

    def describe_models(self) -> List[Dict[str, Any]]:
        """Model catalogue as exposed by GET /models."""
        return [
            {
                "id": model,
                "name": config["display_name"],
                "provider": config["provider"],
                "description": config["description"],
                "available": self.is_available(model),
                "supportsMCP": config["supports_mcp"],
                "costPerToken": config["cost_per_token"],
                "maxTokens": config["max_tokens"],
                "features": {
                    "streaming": True,
                    "functionCalling": config["supports_mcp"],
                },
            }
            for model, config in AI_MODEL_CONFIGS.items()
        ]

    def test_model(self, model: str) -> Dict[str, Any]:
        """Send a fixed test message to one model, without fallback."""
        request = ChatRequest(
            messages=[{"role": "user", "content": MODEL_TEST_PROMPT}],
            model=model,
            max_tokens=50,
        )
        response = self.chat(request, allow_fallback=False)
        return {
            "model": model,
            "connected": "test successful" in response.content.lower(),
            "response": response.content,
            "usage": response.usage.model_dump(by_alias=True),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


def get_ai_service() -> AIService:
    return AIService()
