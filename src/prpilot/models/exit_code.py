"""ExitCode — 終了コードの定義。"""

from enum import IntEnum


class ExitCode(IntEnum):
    """プロセス終了コード。

    スキップ（レビュー済みコミット）も SUCCESS として扱う。
    """

    SUCCESS = 0
    EXECUTION_ERROR = 1
    INPUT_ERROR = 2
