"""設定インスペクション。

``prpilot config`` が出力する JSON ドキュメントを構築する。
資格情報の値は含めず、出所ラベルと解決可否のみを出力する。
"""

from __future__ import annotations

import shutil
from collections.abc import Mapping

from pydantic import Field

from prpilot.config._providers import (
    Which,
    command_exists,
    display_name_for,
    resolve_host_token,
    resolve_provider_credential,
    resolve_provider_specs,
)
from prpilot.config._resolver import LoadedConfig
from prpilot.models._base import PrpilotBaseModel
from prpilot.models.config import CommentLanguage


class EffectiveDefaults(PrpilotBaseModel):
    """デフォルト値適用後の defaults セクション。"""

    max_diff_bytes: int
    system_prompt: str
    review_guide_path: str | None
    comment_language: CommentLanguage
    timeout_seconds: int


class HostInspection(PrpilotBaseModel):
    """ホストごとのトークン解決状況。"""

    token_source: str | None
    token_resolved: bool
    api_base: str | None


class ProviderInspection(PrpilotBaseModel):
    """プロバイダーごとの実行モード解決状況。

    resolved_mode は "api" / "cli" / "disabled" / "unavailable" のいずれか。
    """

    enabled: bool
    display_name: str
    resolved_mode: str
    runnable: bool
    command: str | None
    args: list[str]
    use_stdin: bool
    command_available: bool
    api_key_source: str | None
    api_key_resolved: bool
    model: str | None
    excluded_reason: str | None = None


class ConfigInspection(PrpilotBaseModel):
    """設定インスペクションのルートドキュメント。"""

    searched_paths: list[str]
    loaded_paths: list[str]
    defaults: dict[str, object] = Field(default_factory=dict)
    effective_defaults: EffectiveDefaults
    hosts: dict[str, HostInspection]
    providers: dict[str, ProviderInspection]


def build_inspection(
    loaded: LoadedConfig,
    environ: Mapping[str, str],
    which: Which = shutil.which,
) -> ConfigInspection:
    """LoadedConfig からインスペクションを構築する。

    実行モードは resolve_provider_specs と同じ判定で算出するため、
    レビュー実行時の解決結果と一致する。

    Args:
        loaded: 解決済み設定。
        environ: 環境変数。
        which: コマンド探索関数。

    Returns:
        ConfigInspection。
    """
    config = loaded.config
    resolution = resolve_provider_specs(config, environ, which)
    specs = {spec.provider_id: spec for spec in resolution.specs}
    exclusions = {e.provider_id: e.reason for e in resolution.exclusions}

    hosts: dict[str, HostInspection] = {}
    for host, host_config in config.hosts.items():
        token = resolve_host_token(host_config, environ)
        hosts[host] = HostInspection(
            token_source=token.source,
            token_resolved=token.resolved,
            api_base=host_config.api_base,
        )

    providers: dict[str, ProviderInspection] = {}
    for provider_id, provider in config.providers.items():
        credential = resolve_provider_credential(provider, environ)
        spec = specs.get(provider_id)
        if not provider.enabled:
            resolved_mode = "disabled"
        elif spec is None:
            resolved_mode = "unavailable"
        else:
            resolved_mode = spec.mode.value
        providers[provider_id] = ProviderInspection(
            enabled=provider.enabled,
            display_name=display_name_for(provider_id, provider),
            resolved_mode=resolved_mode,
            runnable=spec is not None,
            command=provider.command,
            args=list(provider.args),
            use_stdin=provider.use_stdin,
            command_available=command_exists(provider.command, which),
            api_key_source=credential.source,
            api_key_resolved=credential.resolved,
            model=spec.model if spec is not None else provider.model,
            excluded_reason=exclusions.get(provider_id),
        )

    defaults = config.defaults
    return ConfigInspection(
        searched_paths=[str(p) for p in loaded.searched_paths],
        loaded_paths=[str(p) for p in loaded.loaded_paths],
        defaults=loaded.file_defaults,
        effective_defaults=EffectiveDefaults(
            max_diff_bytes=defaults.max_diff_bytes,
            system_prompt=defaults.system_prompt,
            review_guide_path=defaults.review_guide_path,
            comment_language=defaults.comment_language,
            timeout_seconds=defaults.timeout_seconds,
        ),
        hosts=hosts,
        providers=providers,
    )
