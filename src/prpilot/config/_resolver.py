"""設定リゾルバー。

組み込みデフォルト値と探索パス上の JSON 設定ファイルを
低優先度から順にディープマージし、実効設定を構築する。
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from pydantic import ValidationError

from prpilot.config._loader import ConfigError, ConfigReader, JsonConfigReader
from prpilot.config._locator import ConfigSource, config_sources
from prpilot.models.config import PARTIAL_CONTEXT_KEY, PrpilotConfig

logger = logging.getLogger(__name__)

_DEFAULTS_KEY: Final[str] = "defaults"

BUILTIN_DEFAULTS: Final[dict[str, object]] = {
    "hosts": {
        "github.com": {"token_env": "GITHUB_TOKEN"},
        "gitlab.com": {"token_env": "GITLAB_TOKEN"},
    },
    "providers": {
        "openai": {
            "command": "codex",
            "args": ["exec"],
            "api_key_env": "OPENAI_API_KEY",
        },
        "anthropic": {
            "command": "claude",
            "args": ["-p"],
            "api_key_env": "ANTHROPIC_API_KEY",
        },
        "gemini": {
            "command": "gemini",
            "api_key_env": "GEMINI_API_KEY",
        },
    },
}
"""組み込みデフォルト設定レイヤー（最低優先）。"""


@dataclass(frozen=True)
class LoadedConfig:
    """設定解決の結果。

    Attributes:
        config: 実効設定。
        searched_paths: 探索したパス（優先度順）。
        loaded_paths: 実際に読み込んだパス（優先度順）。
        file_defaults: 設定ファイル由来の defaults セクション（組み込み値を含まない）。
        warnings: スキップした設定ソースの警告メッセージ。
    """

    config: PrpilotConfig
    searched_paths: tuple[Path, ...] = ()
    loaded_paths: tuple[Path, ...] = ()
    file_defaults: dict[str, object] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()


def deep_merge(
    base: Mapping[str, object], override: Mapping[str, object]
) -> dict[str, object]:
    """2 つの設定辞書をディープマージする。

    両方が dict の項目はキー単位で再帰的にマージし、
    それ以外（スカラー・配列・null）は override の値で丸ごと置き換える。
    入力は変更しない。

    Args:
        base: 低優先度の辞書。
        override: 高優先度の辞書。

    Returns:
        マージ済みの新しい辞書。
    """
    merged: dict[str, object] = {}
    for layer in (base, override):
        for key, value in layer.items():
            existing = merged.get(key)
            if isinstance(existing, Mapping) and isinstance(value, Mapping):
                merged[key] = deep_merge(existing, value)
            elif isinstance(value, Mapping):
                merged[key] = deep_merge({}, value)
            elif isinstance(value, list):
                merged[key] = list(value)
            else:
                merged[key] = value
    return merged


def merge_config_layers(
    *layers: Mapping[str, object] | None,
) -> dict[str, object]:
    """複数の設定レイヤーを左から順に畳み込む。

    後のレイヤーが先のレイヤーを上書きする。None のレイヤーはスキップされる。

    Args:
        layers: マージ対象の設定辞書。低優先度から高優先度の順。

    Returns:
        マージ済みの設定辞書。
    """
    result: dict[str, object] = {}
    for layer in layers:
        if layer is None:
            continue
        result = deep_merge(result, layer)
    return result


def _load_source(reader: ConfigReader, source: ConfigSource) -> dict[str, object] | None:
    """単一の設定ソースを読み込み、単体でスキーマ検証する。

    Returns:
        設定辞書。ファイルが存在しない場合は None。

    Raises:
        ConfigError: 読み取り不能、JSON 不正、またはスキーマ不正の場合。
    """
    document = reader.read(source.path)
    if document is None:
        return None
    if not isinstance(document, dict):
        raise ConfigError(
            f"Config file '{source.path}' must contain a JSON object, "
            f"got {type(document).__name__}"
        )
    try:
        PrpilotConfig.model_validate(document, context={PARTIAL_CONTEXT_KEY: True})
    except ValidationError as exc:
        raise ConfigError(f"Invalid config file '{source.path}': {exc}") from exc
    return document


def resolve_config(
    reader: ConfigReader | None = None,
    environ: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    home: Path | None = None,
) -> LoadedConfig:
    """全設定ソースを解決し LoadedConfig を構築する。

    存在しないソースは黙ってスキップする。存在するが不正なソースは
    警告を出してスキップするが、明示指定ソース（PRPILOT_CONFIG）の場合は
    存在しないことも含めて致命的エラーとする。

    Args:
        reader: 設定ソースの読み込みポート。None の場合は JsonConfigReader。
        environ: 環境変数。None の場合は os.environ。
        cwd: プロジェクトローカル設定の基準ディレクトリ。None の場合はカレント。
        home: ホームディレクトリ（テスト用）。

    Returns:
        解決済みの LoadedConfig。

    Raises:
        ConfigError: 明示指定ソースが読めない・不正な場合、
            またはマージ後の設定が不正な場合。
    """
    effective_reader = reader if reader is not None else JsonConfigReader()
    effective_environ = environ if environ is not None else os.environ
    effective_cwd = cwd if cwd is not None else Path.cwd()

    sources = config_sources(effective_environ, effective_cwd, home)
    file_layers: list[dict[str, object]] = []
    loaded_paths: list[Path] = []
    warnings: list[str] = []

    for source in sources:
        try:
            layer = _load_source(effective_reader, source)
        except ConfigError as exc:
            if source.explicit:
                raise
            message = f"Skipping config file '{source.path}': {exc}"
            logger.warning(message)
            warnings.append(message)
            continue
        if layer is None:
            if source.explicit:
                raise ConfigError(
                    f"Config file named by PRPILOT_CONFIG does not exist: {source.path}"
                )
            continue
        file_layers.append(layer)
        loaded_paths.append(source.path)

    merged_files = merge_config_layers(*file_layers)
    merged = merge_config_layers(BUILTIN_DEFAULTS, merged_files)
    try:
        config = PrpilotConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid merged configuration: {exc}") from exc

    file_defaults = merged_files.get(_DEFAULTS_KEY)
    return LoadedConfig(
        config=config,
        searched_paths=tuple(s.path for s in sources),
        loaded_paths=tuple(loaded_paths),
        file_defaults=dict(file_defaults) if isinstance(file_defaults, dict) else {},
        warnings=tuple(warnings),
    )
