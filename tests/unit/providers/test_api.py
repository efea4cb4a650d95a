"""API モード実行のテスト。"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel

from prpilot.models.config import ApiType
from prpilot.models.provider import ProviderMode, ProviderSpec
from prpilot.models.review import TokenUsage
from prpilot.providers import ProviderError, build_model, run_api

PATCH_AGENT = "prpilot.providers._api.Agent"
PATCH_BUILD_MODEL = "prpilot.providers._api.build_model"


def _spec(api_type: ApiType = ApiType.OPENAI, **overrides: object) -> ProviderSpec:
    data: dict[str, object] = {
        "provider_id": api_type.value,
        "display_name": "Test",
        "mode": ProviderMode.API,
        "api_type": api_type,
        "api_key": "test-key",
        "model": "test-model",
        "timeout_seconds": 60,
    }
    data.update(overrides)
    return ProviderSpec.model_validate(data)


def _mock_agent(output: str, input_tokens: int = 100, output_tokens: int = 20) -> MagicMock:
    result = MagicMock()
    result.output = output
    result.usage.return_value = MagicMock(
        input_tokens=input_tokens, output_tokens=output_tokens
    )
    agent = MagicMock()
    agent.run = AsyncMock(return_value=result)
    return agent


class TestBuildModel:
    """ファミリーごとのモデル構築を検証。"""

    def test_openai(self) -> None:
        model = build_model(_spec(ApiType.OPENAI, api_base="http://localhost:9999/v1"))
        assert isinstance(model, OpenAIChatModel)
        assert model.model_name == "test-model"

    def test_anthropic(self) -> None:
        assert isinstance(build_model(_spec(ApiType.ANTHROPIC)), AnthropicModel)

    def test_gemini(self) -> None:
        assert isinstance(build_model(_spec(ApiType.GEMINI)), GoogleModel)

    def test_missing_credential(self) -> None:
        with pytest.raises(ProviderError, match="missing API credential"):
            build_model(_spec(api_key=None))


class TestRunApi:
    """API 呼び出し結果の変換を検証。"""

    async def test_success_with_usage(self) -> None:
        agent = _mock_agent("  Findings  ")
        with (
            patch(PATCH_BUILD_MODEL, return_value=MagicMock()),
            patch(PATCH_AGENT, return_value=agent),
        ):
            response = await run_api(_spec(), "prompt")
        assert response.text == "Findings"
        assert response.usage == TokenUsage(
            prompt_tokens=100, completion_tokens=20, total_tokens=120
        )
        agent.run.assert_awaited_once_with("prompt")

    async def test_request_failure_wrapped(self) -> None:
        agent = MagicMock()
        agent.run = AsyncMock(side_effect=RuntimeError("429 rate limited"))
        with (
            patch(PATCH_BUILD_MODEL, return_value=MagicMock()),
            patch(PATCH_AGENT, return_value=agent),
        ):
            with pytest.raises(ProviderError, match="429 rate limited"):
                await run_api(_spec(), "prompt")

    async def test_empty_output_is_error(self) -> None:
        with (
            patch(PATCH_BUILD_MODEL, return_value=MagicMock()),
            patch(PATCH_AGENT, return_value=_mock_agent("   ")),
        ):
            with pytest.raises(ProviderError, match="empty output"):
                await run_api(_spec(), "prompt")
