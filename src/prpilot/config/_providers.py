"""資格情報の解決とプロバイダー実行モードの決定。

値はすべて実行時に環境変数・コマンドから解決し、SecretStr で保持する。
表示用には出所ラベル（"inline", "env:NAME" など）のみを公開する。
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Final

from pydantic import SecretStr

from prpilot.config._loader import ConfigError
from prpilot.models.config import (
    ApiType,
    HostConfig,
    PrpilotConfig,
    ProviderConfig,
    resolve_api_type,
)
from prpilot.models.provider import ProviderExclusion, ProviderMode, ProviderSpec

logger = logging.getLogger(__name__)

Which = Callable[[str], str | None]
"""コマンド名から実行可能パスを返す関数（shutil.which 互換）。"""

_TOKEN_COMMAND_TIMEOUT_SECONDS: Final[int] = 10

DEFAULT_API_MODELS: Final[dict[ApiType, str]] = {
    ApiType.OPENAI: "gpt-4o",
    ApiType.ANTHROPIC: "claude-sonnet-4-5",
    ApiType.GEMINI: "gemini-2.5-pro",
}
"""API モードで model 未指定時に使うモデル名。"""

DEFAULT_DISPLAY_NAMES: Final[dict[str, str]] = {
    "openai": "OpenAI/Codex",
    "anthropic": "Anthropic/Claude",
    "gemini": "Google/Gemini",
}


@dataclass(frozen=True)
class CredentialResolution:
    """資格情報の解決結果。

    Attributes:
        value: 解決された値。解決できなければ None。
        source: 出所ラベル。設定がなければ None。
    """

    value: SecretStr | None = None
    source: str | None = None

    @property
    def resolved(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class ProviderResolution:
    """プロバイダー解決の結果。"""

    specs: tuple[ProviderSpec, ...]
    exclusions: tuple[ProviderExclusion, ...]


def _from_env(
    name: str | None, environ: Mapping[str, str]
) -> CredentialResolution | None:
    if name is None:
        return None
    value = environ.get(name, "").strip()
    if value:
        return CredentialResolution(SecretStr(value), f"env:{name}")
    return CredentialResolution(None, f"env:{name} (missing)")


def _inline(secret: SecretStr | None) -> CredentialResolution | None:
    if secret is None:
        return None
    value = secret.get_secret_value().strip()
    if not value:
        return None
    return CredentialResolution(SecretStr(value), "inline")


def _run_token_command(command: tuple[str, ...]) -> CredentialResolution:
    """token_command を実行し stdout をトークンとして返す。"""
    label = f"cmd:{' '.join(command)}"
    try:
        completed = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            timeout=_TOKEN_COMMAND_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("Token command '%s' could not be run: %s", command[0], exc)
        return CredentialResolution(None, f"{label} (failed)")
    if completed.returncode != 0:
        logger.warning(
            "Token command '%s' exited with %d", command[0], completed.returncode
        )
        return CredentialResolution(None, f"{label} (failed)")
    token = completed.stdout.strip()
    if not token:
        return CredentialResolution(None, f"{label} (empty)")
    return CredentialResolution(SecretStr(token), label)


def resolve_host_token(
    host_config: HostConfig | None,
    environ: Mapping[str, str],
) -> CredentialResolution:
    """VCS ホストのトークンを解決する。

    解決順: token（直接値） → token_env → token_command。
    どれも解決できない場合、最後に試した手段の出所ラベルを返す。

    Args:
        host_config: ホスト設定。None の場合は未設定扱い。
        environ: 環境変数。

    Returns:
        CredentialResolution。
    """
    if host_config is None:
        return CredentialResolution()

    inline = _inline(host_config.token)
    if inline is not None:
        return inline

    from_env = _from_env(host_config.token_env, environ)
    if from_env is not None and from_env.resolved:
        return from_env

    if host_config.token_command is not None:
        return _run_token_command(host_config.token_command)

    return from_env if from_env is not None else CredentialResolution()


def resolve_provider_credential(
    provider: ProviderConfig,
    environ: Mapping[str, str],
) -> CredentialResolution:
    """プロバイダーの API 資格情報を解決する。解決順: api_key → api_key_env。"""
    inline = _inline(provider.api_key)
    if inline is not None:
        return inline
    from_env = _from_env(provider.api_key_env, environ)
    return from_env if from_env is not None else CredentialResolution()


def command_exists(command: str | None, which: Which = shutil.which) -> bool:
    """コマンドが実行可能パス上に存在するかどうか。"""
    if not command:
        return False
    return which(command) is not None


def display_name_for(provider_id: str, provider: ProviderConfig) -> str:
    """プロバイダーの表示名を返す。"""
    if provider.display_name is not None:
        return provider.display_name
    return DEFAULT_DISPLAY_NAMES.get(provider_id, provider_id)


def resolve_provider_specs(
    config: PrpilotConfig,
    environ: Mapping[str, str],
    which: Which = shutil.which,
) -> ProviderResolution:
    """実効設定から実行対象の ProviderSpec を構築する。

    プロバイダーごとに:
        1. API 資格情報が空でない値に解決できれば API モード
           （command があっても API が優先される）
        2. そうでなく command が実行可能パス上にあれば CLI モード
        3. どちらでもなければ理由を記録して除外

    無効化されたプロバイダーも理由付きで除外される。
    結果の順序は設定上のプロバイダー順に従う。

    Args:
        config: 実効設定。
        environ: 環境変数。
        which: コマンド探索関数。

    Returns:
        ProviderResolution。

    Raises:
        ConfigError: 資格情報を解決したプロバイダーの API ファミリーが不明な場合
            （検証を経ずに構築された設定でのみ起こりうる）。
    """
    timeout = float(config.defaults.timeout_seconds)
    specs: list[ProviderSpec] = []
    exclusions: list[ProviderExclusion] = []

    for provider_id, provider in config.providers.items():
        if not provider.enabled:
            exclusions.append(ProviderExclusion(provider_id=provider_id, reason="disabled"))
            continue

        display_name = display_name_for(provider_id, provider)
        credential = resolve_provider_credential(provider, environ)
        if credential.value is not None:
            api_type = resolve_api_type(provider_id, provider)
            if api_type is None:
                raise ConfigError(
                    f"Provider '{provider_id}' resolved an API credential "
                    "but has no known api_type (openai, anthropic, gemini)"
                )
            specs.append(
                ProviderSpec(
                    provider_id=provider_id,
                    display_name=display_name,
                    mode=ProviderMode.API,
                    api_type=api_type,
                    api_key=credential.value,
                    api_base=provider.api_base,
                    model=provider.model or DEFAULT_API_MODELS[api_type],
                    timeout_seconds=timeout,
                )
            )
            continue

        if command_exists(provider.command, which):
            specs.append(
                ProviderSpec(
                    provider_id=provider_id,
                    display_name=display_name,
                    mode=ProviderMode.CLI,
                    model=provider.model,
                    command=provider.command,
                    args=provider.args,
                    use_stdin=provider.use_stdin,
                    timeout_seconds=timeout,
                )
            )
            continue

        if provider.command is None:
            reason = "no API credential resolved and no command configured"
        else:
            reason = (
                f"no API credential resolved and command '{provider.command}' "
                "not found on PATH"
            )
        exclusions.append(ProviderExclusion(provider_id=provider_id, reason=reason))

    return ProviderResolution(specs=tuple(specs), exclusions=tuple(exclusions))
