"""VCS 連携のエラー定義。"""

from __future__ import annotations


class VcsError(Exception):
    """VCS ホストとの通信失敗。実行全体にとって致命的。

    Attributes:
        status_code: HTTP ステータスコード（応答を受信できた場合）。
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
