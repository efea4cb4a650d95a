"""プロバイダー実行仕様の定義。

ProviderSpec は実行ごとに実効設定から構築され、並行タスク間で共有される。
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field, SecretStr

from prpilot.models._base import PrpilotBaseModel
from prpilot.models.config import ApiType


class ProviderMode(StrEnum):
    """プロバイダーの実行モード。"""

    API = "api"
    CLI = "cli"


class ProviderSpec(PrpilotBaseModel):
    """単一プロバイダーの実行仕様。

    Attributes:
        provider_id: 設定上のプロバイダー ID。
        display_name: レポート表示名。
        mode: 解決済み実行モード。
        api_type: API モード時のプロバイダーファミリー。
        api_key: API モード時の資格情報。
        api_base: API モード時のベース URL。
        model: 使用モデル名。
        command: CLI モード時の実行コマンド。
        args: CLI モード時のコマンド引数。
        use_stdin: CLI モードでプロンプトを stdin で渡すかどうか。
        timeout_seconds: 1 回の呼び出しのタイムアウト（秒）。
    """

    provider_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    mode: ProviderMode
    api_type: ApiType | None = None
    api_key: SecretStr | None = None
    api_base: str | None = None
    model: str | None = None
    command: str | None = None
    args: tuple[str, ...] = ()
    use_stdin: bool = True
    timeout_seconds: float = Field(gt=0, allow_inf_nan=False)


class ProviderExclusion(PrpilotBaseModel):
    """実行対象から除外されたプロバイダーと理由。"""

    provider_id: str = Field(min_length=1)
    reason: str = Field(min_length=1)
