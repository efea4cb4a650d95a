"""JsonConfigReader のテスト。"""

from __future__ import annotations

from pathlib import Path

import pytest

from prpilot.config import ConfigError, ConfigReader, JsonConfigReader


class TestJsonConfigReader:
    """JSON 設定ファイルの読み込みを検証。"""

    def test_implements_port(self) -> None:
        assert isinstance(JsonConfigReader(), ConfigReader)

    def test_reads_object(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text('{"defaults": {"max_diff_bytes": 10}}', encoding="utf-8")
        assert JsonConfigReader().read(path) == {"defaults": {"max_diff_bytes": 10}}

    def test_missing_file_returns_none(self, tmp_path: Path) -> None:
        """存在しないファイルはエラーではなく None。"""
        assert JsonConfigReader().read(tmp_path / "absent.json") is None

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            JsonConfigReader().read(path)

    def test_directory_raises(self, tmp_path: Path) -> None:
        """読み取れないパスは ConfigError。"""
        with pytest.raises(ConfigError, match="Cannot read"):
            JsonConfigReader().read(tmp_path)

    def test_non_object_document_returned_as_is(self, tmp_path: Path) -> None:
        """形の検証はリゾルバーの責務。"""
        path = tmp_path / "config.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert JsonConfigReader().read(path) == [1, 2]
