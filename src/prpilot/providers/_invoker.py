"""プロバイダー呼び出しポートの本番実装。"""

from __future__ import annotations

from prpilot.models.provider import ProviderMode, ProviderSpec
from prpilot.models.review import ProviderResponse
from prpilot.providers._api import run_api
from prpilot.providers._command import run_command


class DefaultProviderInvoker:
    """解決済みモードに応じて API または CLI でプロバイダーを呼び出す。"""

    async def invoke(self, spec: ProviderSpec, prompt: str) -> ProviderResponse:
        if spec.mode == ProviderMode.API:
            return await run_api(spec, prompt)
        return await run_command(spec, prompt)
