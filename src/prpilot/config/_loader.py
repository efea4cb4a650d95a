"""JSON 設定ファイルローダー。

パースのみを担当し、スキーマ検証は _resolver.py が担当する。
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol, runtime_checkable


class ConfigError(Exception):
    """設定の読み込み・検証に失敗した場合のエラー。"""


@runtime_checkable
class ConfigReader(Protocol):
    """設定ソースを読み込むポート。"""

    def read(self, path: Path) -> object | None:
        """設定ファイルを読み込む。

        Returns:
            パース済みドキュメント。ファイルが存在しない場合は None。

        Raises:
            ConfigError: 読み取り不能または JSON として不正な場合。
        """
        ...


class JsonConfigReader:
    """ファイルシステム上の JSON 設定ファイルを読み込む。"""

    def read(self, path: Path) -> object | None:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Cannot read config file '{path}': {exc}") from exc
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file '{path}': {exc}") from exc
