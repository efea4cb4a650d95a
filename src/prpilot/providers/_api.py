"""API モードのプロバイダー実行。

pydantic-ai の Agent を各プロバイダーファミリーのモデルで構築し、
1 回のリクエストでレビュー本文を得る。
"""

from __future__ import annotations

import logging

from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.anthropic import AnthropicProvider
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from prpilot.models.config import ApiType
from prpilot.models.provider import ProviderSpec
from prpilot.models.review import ProviderResponse, TokenUsage
from prpilot.providers._errors import ProviderError

logger = logging.getLogger(__name__)


def build_model(spec: ProviderSpec) -> Model:
    """ProviderSpec から pydantic-ai モデルを構築する。

    Raises:
        ProviderError: API 資格情報・ファミリー・モデル名が欠けている場合。
    """
    if spec.api_key is None or spec.api_type is None or spec.model is None:
        raise ProviderError(
            f"Provider '{spec.provider_id}' is missing API credential, type or model"
        )
    api_key = spec.api_key.get_secret_value()

    if spec.api_type == ApiType.OPENAI:
        return OpenAIChatModel(
            spec.model,
            provider=OpenAIProvider(api_key=api_key, base_url=spec.api_base),
        )
    if spec.api_type == ApiType.ANTHROPIC:
        if spec.api_base is not None:
            anthropic_provider = AnthropicProvider(
                api_key=api_key, base_url=spec.api_base
            )
        else:
            anthropic_provider = AnthropicProvider(api_key=api_key)
        return AnthropicModel(spec.model, provider=anthropic_provider)
    if spec.api_type == ApiType.GEMINI:
        if spec.api_base is not None:
            google_provider = GoogleProvider(api_key=api_key, base_url=spec.api_base)
        else:
            google_provider = GoogleProvider(api_key=api_key)
        return GoogleModel(spec.model, provider=google_provider)
    raise ProviderError(f"Unsupported api_type: {spec.api_type}")


async def run_api(spec: ProviderSpec, prompt: str) -> ProviderResponse:
    """API を 1 回呼び出し、応答を返す。

    タイムアウトは呼び出し側で制御する。

    Args:
        spec: API モードの ProviderSpec。
        prompt: プロンプト本文。

    Returns:
        ProviderResponse。使用量は result.usage() から取得する。

    Raises:
        ProviderError: モデル構築失敗、API 呼び出し失敗、応答が空の場合。
    """
    model = build_model(spec)
    agent = Agent(model=model, output_type=str)
    try:
        result = await agent.run(prompt)
    except Exception as exc:
        raise ProviderError(
            f"{spec.display_name} API request failed: {type(exc).__name__}: {exc}"
        ) from exc

    text = result.output.strip()
    if not text:
        raise ProviderError(f"{spec.display_name} API returned empty output")

    usage = result.usage()
    return ProviderResponse(
        text=text,
        usage=TokenUsage(
            prompt_tokens=usage.input_tokens,
            completion_tokens=usage.output_tokens,
            total_tokens=usage.input_tokens + usage.output_tokens,
        ),
    )
