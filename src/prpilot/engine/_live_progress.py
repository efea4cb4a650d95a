"""TTY 環境向けのパス別進捗テーブル。"""

from __future__ import annotations

import sys

from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from prpilot.models.review import ProviderOutcome, ProviderSuccess, ProviderTimeout


class RichProgressReporter:
    """(プロバイダー, パス) ごとの状態を Rich Live テーブルで表示する。

    初回レビューの行を相互レビューの行より先に並べる。
    段階ステータスはテーブルの上に 1 行ずつ出力する。
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(file=sys.stderr)
        self._live: Live | None = None
        self.rows: dict[tuple[str, str], Text] = {}

    def on_status(self, stage: str, message: str) -> None:
        self._console.print(f"[bold]{stage}[/bold] {message}", highlight=False)

    def on_provider_pending(self, provider_name: str, review_pass: str) -> None:
        self._set((provider_name, review_pass), Text("pending", style="dim"), new=True)

    def on_provider_start(self, provider_name: str, review_pass: str) -> None:
        self._set((provider_name, review_pass), Text("running", style="cyan"))

    def on_provider_complete(
        self, provider_name: str, review_pass: str, outcome: ProviderOutcome
    ) -> None:
        if isinstance(outcome, ProviderSuccess):
            cell = Text(f"✓ {outcome.elapsed_time:.1f}s", style="green")
        elif isinstance(outcome, ProviderTimeout):
            cell = Text("⏱ timeout", style="red")
        else:
            cell = Text("✗ error", style="red")
        self._set((provider_name, review_pass), cell)

    def start(self) -> None:
        live = Live(self.build_table(), console=self._console, refresh_per_second=4)
        live.start()
        self._live = live

    def stop(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None

    def build_table(self) -> Table:
        """現在の状態からテーブルを構築する。"""
        table = Table(title="Review Progress")
        for header in ("Provider", "Pass", "Status"):
            table.add_column(header)
        # "cross" は "review" より先に辞書順で並ぶため、パスは明示的に比較する
        for (name, review_pass), cell in sorted(
            self.rows.items(), key=lambda item: (item[0][1] != "review", item[0][0])
        ):
            table.add_row(name, review_pass, cell)
        return table

    def _set(self, key: tuple[str, str], cell: Text, *, new: bool = False) -> None:
        if not new and key not in self.rows:
            return
        self.rows[key] = cell
        if self._live is not None:
            self._live.update(self.build_table())
