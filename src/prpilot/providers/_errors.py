"""プロバイダー呼び出しのエラー定義。"""

from __future__ import annotations


class ProviderError(Exception):
    """単一プロバイダーの呼び出し失敗。

    Attributes:
        exit_code: CLI プロセス終了コード（CLI モードのみ）。
        stderr: 標準エラー出力（CLI モードのみ）。
    """

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr
