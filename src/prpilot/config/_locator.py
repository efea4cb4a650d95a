"""設定ファイルの探索パス。

低優先度から高優先度の順:
    /etc/prpilot/config.json
    ~/.config/prpilot/config.json（XDG_CONFIG_HOME を尊重）
    .prpilot/config.json
    prpilot.config.json
    $PRPILOT_CONFIG（明示指定）
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final

CONFIG_ENV_VAR: Final[str] = "PRPILOT_CONFIG"
"""明示的な設定ファイルパスを指定する環境変数名。"""

_APP_DIR_NAME: Final[str] = "prpilot"
_CONFIG_FILE_NAME: Final[str] = "config.json"
_SYSTEM_CONFIG_DIR: Final[Path] = Path("/etc")
_PROJECT_DIR_NAME: Final[str] = ".prpilot"
_PROJECT_FILE_NAME: Final[str] = "prpilot.config.json"


@dataclass(frozen=True)
class ConfigSource:
    """探索対象の設定ソース。

    Attributes:
        path: 設定ファイルのパス。
        explicit: 環境変数で明示指定されたソースかどうか。
    """

    path: Path
    explicit: bool = False


def get_user_config_path(environ: Mapping[str, str], home: Path | None = None) -> Path:
    """ユーザー設定ファイルのパスを返す。

    XDG_CONFIG_HOME が設定されていればその配下、なければ ~/.config 配下。
    """
    xdg = environ.get("XDG_CONFIG_HOME", "").strip()
    base = Path(xdg) if xdg else (home or Path.home()) / ".config"
    return base / _APP_DIR_NAME / _CONFIG_FILE_NAME


def config_sources(
    environ: Mapping[str, str],
    cwd: Path,
    home: Path | None = None,
) -> list[ConfigSource]:
    """設定ソースを低優先度から高優先度の順に列挙する。

    同一パスは一度だけ探索する。明示指定パスが既存の候補と重複した場合は
    その候補の位置を保ったまま明示指定扱いにする。

    Args:
        environ: 環境変数。
        cwd: プロジェクトローカル設定の基準ディレクトリ。
        home: ホームディレクトリ（テスト用）。

    Returns:
        ConfigSource のリスト。
    """
    candidates = [
        ConfigSource(_SYSTEM_CONFIG_DIR / _APP_DIR_NAME / _CONFIG_FILE_NAME),
        ConfigSource(get_user_config_path(environ, home)),
        ConfigSource(cwd / _PROJECT_DIR_NAME / _CONFIG_FILE_NAME),
        ConfigSource(cwd / _PROJECT_FILE_NAME),
    ]
    explicit = environ.get(CONFIG_ENV_VAR, "").strip()
    if explicit:
        explicit_path = Path(explicit).expanduser()
        if not explicit_path.is_absolute():
            explicit_path = cwd / explicit_path
        candidates.append(ConfigSource(explicit_path, explicit=True))

    sources: list[ConfigSource] = []
    for candidate in candidates:
        for i, existing in enumerate(sources):
            if existing.path == candidate.path:
                if candidate.explicit:
                    sources[i] = ConfigSource(existing.path, explicit=True)
                break
        else:
            sources.append(candidate)
    return sources
