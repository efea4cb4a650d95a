"""ReviewEngine のパイプライン全体のテスト。

VCS・プロバイダー・設定ソースはすべて tests.fakes のインメモリ実装を使う。
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import pytest

from prpilot.config import ConfigError
from prpilot.engine import TRUNCATION_SENTINEL, EngineResult, RunOutcome, run_review
from prpilot.models.exit_code import ExitCode
from prpilot.models.review import Marker, MarkerKind, ReviewComment, scan_markers
from prpilot.vcs import VcsError
from tests.fakes import (
    FakeConfigReader,
    FakeProviderInvoker,
    FakeVcsFactory,
    FakeVcsGateway,
    RecordingProgressReporter,
    which_from,
)

URL = "https://github.com/acme/widget/pull/7"
CWD = Path("/work/repo")
PROJECT_CONFIG = CWD / "prpilot.config.json"
BASE_ENV = {"GITHUB_TOKEN": "ghp_test", "XDG_CONFIG_HOME": "/xdg"}
FINAL = Marker(kind=MarkerKind.FINAL, sha="abc123")
CLAIM = Marker(kind=MarkerKind.CLAIM, sha="abc123")


class Harness:
    """run_review に渡す fake 一式。"""

    def __init__(
        self,
        gateway: FakeVcsGateway | None = None,
        invoker: FakeProviderInvoker | None = None,
        documents: Mapping[Path | str, object] | None = None,
        environ: Mapping[str, str] | None = None,
        available: set[str] | None = None,
    ) -> None:
        self.gateway = gateway or FakeVcsGateway()
        self.factory = FakeVcsFactory(self.gateway)
        self.invoker = invoker or FakeProviderInvoker()
        if documents is None:
            documents = {PROJECT_CONFIG: {"providers": {"gemini": {"enabled": False}}}}
        self.reader = FakeConfigReader(documents)
        self.environ = dict(BASE_ENV if environ is None else environ)
        self.available = {"codex", "claude"} if available is None else available
        self.reporter = RecordingProgressReporter()

    async def run(
        self, url: str = URL, *, dry_run: bool = False, force: bool = False
    ) -> EngineResult:
        return await run_review(
            url,
            dry_run=dry_run,
            force=force,
            config_reader=self.reader,
            vcs_factory=self.factory,
            invoker=self.invoker,
            environ=self.environ,
            which=which_from(self.available),
            reporter=self.reporter,
            cwd=CWD,
        )


class TestRunReviewHappyPath:
    """claim → 初回 → 相互 → 最終レポートの正常系を検証。"""

    async def test_claim_then_final_report_in_same_comment(self) -> None:
        h = Harness()
        result = await h.run()

        assert result.outcome == RunOutcome.COMPLETED
        assert result.exit_code == ExitCode.SUCCESS
        assert len(h.gateway.created) == 1
        assert scan_markers(h.gateway.created[0]) == [CLAIM]
        assert len(h.gateway.updated) == 1
        comment_id, body = h.gateway.updated[0]
        assert comment_id == "1001" == result.comment_id
        assert scan_markers(body) == [FINAL]
        assert body == result.markdown

    async def test_both_passes_invoked(self) -> None:
        h = Harness()
        await h.run()
        assert len(h.invoker.calls_for("openai")) == 2
        assert len(h.invoker.calls_for("anthropic")) == 2
        assert h.invoker.calls_for("gemini") == []

    async def test_report_contents(self) -> None:
        h = Harness()
        result = await h.run()
        assert result.markdown is not None
        assert "### OpenAI/Codex" in result.markdown
        assert "### Anthropic/Claude" in result.markdown
        assert "### OpenAI/Codex on Other Agents" in result.markdown
        assert "## Token Usage (Best Effort)" in result.markdown
        assert result.report is not None
        assert [s.provider_id for s in result.report.successes] == [
            "openai",
            "anthropic",
        ]

    async def test_review_prompt_contains_diff_and_sha(self) -> None:
        h = Harness()
        await h.run()
        _, prompt = h.invoker.calls_for("openai")[0]
        assert "Head SHA: abc123" in prompt
        assert "print('hi')" in prompt

    async def test_token_and_host_config_passed_to_factory(self) -> None:
        h = Harness()
        await h.run()
        [(target, host_config, token)] = h.factory.calls
        assert target.url == URL
        assert host_config is not None
        assert token == "ghp_test"

    async def test_reporter_started_and_stopped_once(self) -> None:
        h = Harness()
        await h.run()
        assert h.reporter.started == 1
        assert h.reporter.stopped == 1

    async def test_korean_labels(self) -> None:
        h = Harness(documents={PROJECT_CONFIG: {"defaults": {"comment_language": "ko"}}})
        result = await h.run()
        assert result.markdown is not None
        assert "# 멀티 에이전트 코드 리뷰" in result.markdown


class TestRunReviewDedup:
    """既存マーカーによるスキップと force を検証。"""

    async def test_skip_when_already_reviewed(self) -> None:
        gateway = FakeVcsGateway(
            comments=[ReviewComment(comment_id="900", body=FINAL.render())]
        )
        h = Harness(gateway=gateway)
        result = await h.run()

        assert result.outcome == RunOutcome.SKIPPED
        assert result.exit_code == ExitCode.SUCCESS
        assert result.skip_reason == "already reviewed"
        assert gateway.writes == 0
        assert h.invoker.calls == []

    async def test_skip_when_claimed(self) -> None:
        gateway = FakeVcsGateway(
            comments=[ReviewComment(comment_id="900", body=CLAIM.render())]
        )
        result = await Harness(gateway=gateway).run()
        assert result.outcome == RunOutcome.SKIPPED
        assert result.skip_reason == "review in progress"

    async def test_marker_for_other_sha_does_not_skip(self) -> None:
        old = Marker(kind=MarkerKind.FINAL, sha="old999")
        gateway = FakeVcsGateway(
            comments=[ReviewComment(comment_id="900", body=old.render())]
        )
        result = await Harness(gateway=gateway).run()
        assert result.outcome == RunOutcome.COMPLETED
        assert len(gateway.created) == 1

    async def test_force_rewrites_existing_final_comment(self) -> None:
        gateway = FakeVcsGateway(
            comments=[ReviewComment(comment_id="900", body=FINAL.render())]
        )
        h = Harness(gateway=gateway)
        result = await h.run(force=True)

        assert result.outcome == RunOutcome.COMPLETED
        assert gateway.created == []
        assert [cid for cid, _ in gateway.updated] == ["900", "900"]
        assert scan_markers(gateway.updated[0][1]) == [CLAIM]
        assert scan_markers(gateway.updated[1][1]) == [FINAL]


class TestRunReviewDryRun:
    async def test_no_writes_and_markdown_returned(self) -> None:
        h = Harness()
        result = await h.run(dry_run=True)

        assert result.outcome == RunOutcome.DRY_RUN
        assert result.exit_code == ExitCode.SUCCESS
        assert h.gateway.writes == 0
        assert result.markdown is not None
        assert scan_markers(result.markdown) == [FINAL]

    async def test_works_without_token(self) -> None:
        h = Harness(environ={"XDG_CONFIG_HOME": "/xdg"})
        result = await h.run(dry_run=True)
        assert result.outcome == RunOutcome.DRY_RUN
        assert h.factory.calls[0][2] is None

    async def test_existing_marker_still_skips(self) -> None:
        gateway = FakeVcsGateway(
            comments=[ReviewComment(comment_id="900", body=FINAL.render())]
        )
        result = await Harness(gateway=gateway).run(dry_run=True)
        assert result.outcome == RunOutcome.SKIPPED
        assert gateway.writes == 0


class TestRunReviewInputErrors:
    """入力エラーは終了コード 2。"""

    async def test_unsupported_url(self, capsys: pytest.CaptureFixture[str]) -> None:
        h = Harness()
        result = await h.run("https://example.com/acme/widget/issues/7")

        assert result.outcome == RunOutcome.FAILED
        assert result.exit_code == ExitCode.INPUT_ERROR
        assert h.factory.calls == []
        assert capsys.readouterr().err.startswith("Error: unsupported URL format")

    async def test_missing_explicit_config(self) -> None:
        h = Harness(environ={**BASE_ENV, "PRPILOT_CONFIG": "/cfg/missing.json"})
        result = await h.run()
        assert result.exit_code == ExitCode.INPUT_ERROR
        assert result.error is not None
        assert "PRPILOT_CONFIG" in result.error

    async def test_invalid_explicit_config(self) -> None:
        h = Harness(
            documents={"/cfg/bad.json": ConfigError("Invalid JSON in '/cfg/bad.json'")},
            environ={**BASE_ENV, "PRPILOT_CONFIG": "/cfg/bad.json"},
        )
        result = await h.run()
        assert result.exit_code == ExitCode.INPUT_ERROR

    async def test_invalid_project_config_is_warning(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """暗黙の探索パス上の不正ファイルは警告してスキップする。"""
        h = Harness(documents={PROJECT_CONFIG: ConfigError("broken")})
        result = await h.run()
        assert result.outcome == RunOutcome.COMPLETED
        assert "Warning: Skipping config file" in capsys.readouterr().err

    async def test_unreadable_review_guide(self) -> None:
        h = Harness(
            documents={
                PROJECT_CONFIG: {"defaults": {"review_guide_path": "missing-guide.md"}}
            }
        )
        result = await h.run()
        assert result.exit_code == ExitCode.INPUT_ERROR
        assert h.gateway.writes == 0


class TestRunReviewExecutionErrors:
    """実行時エラーは終了コード 1。"""

    async def test_no_runnable_providers(self) -> None:
        h = Harness(available=set())
        result = await h.run()

        assert result.exit_code == ExitCode.EXECUTION_ERROR
        assert result.error is not None
        assert result.error.startswith("No runnable providers")
        assert "gemini (disabled)" in result.error
        assert h.factory.calls == []

    async def test_missing_token(self) -> None:
        h = Harness(environ={"XDG_CONFIG_HOME": "/xdg"})
        result = await h.run()
        assert result.exit_code == ExitCode.EXECUTION_ERROR
        assert result.error is not None
        assert "env:GITHUB_TOKEN" in result.error
        assert h.factory.calls == []

    async def test_unknown_gitlab_host_without_token(self) -> None:
        h = Harness()
        result = await h.run("https://gitlab.example.com/group/proj/-/merge_requests/3")
        assert result.exit_code == ExitCode.EXECUTION_ERROR
        assert result.error == "No token available for host 'gitlab.example.com'"

    async def test_vcs_error(self) -> None:
        gateway = FakeVcsGateway()
        gateway.fail_with = VcsError("GET failed: 502", status_code=502)
        result = await Harness(gateway=gateway).run()
        assert result.outcome == RunOutcome.FAILED
        assert result.exit_code == ExitCode.EXECUTION_ERROR
        assert result.error == "GET failed: 502"

    async def test_marker_conflict(self) -> None:
        gateway = FakeVcsGateway()
        gateway.before_write = lambda g: g.comments.append(
            ReviewComment(comment_id="77", body=FINAL.render())
        )
        result = await Harness(gateway=gateway).run()

        assert result.exit_code == ExitCode.EXECUTION_ERROR
        assert result.error is not None
        assert "concurrently" in result.error
        # claim のみ書き込まれ、最終レポートは書き込まれない
        assert len(gateway.created) == 1
        assert gateway.updated == []


class TestRunReviewProviderFailures:
    async def test_all_failed_releases_claim(self) -> None:
        invoker = FakeProviderInvoker(
            {"openai": [RuntimeError("down")], "anthropic": [RuntimeError("down too")]}
        )
        h = Harness(invoker=invoker)
        result = await h.run()

        assert result.outcome == RunOutcome.FAILED
        assert result.exit_code == ExitCode.EXECUTION_ERROR
        [(comment_id, body)] = h.gateway.updated
        assert comment_id == "1001"
        assert scan_markers(body) == []
        assert "- **OpenAI/Codex**: error: down" in body
        assert result.markdown == body
        assert h.reporter.stopped == 1

    async def test_one_of_three_fails(self) -> None:
        """3 プロバイダー中 1 つが失敗しても、残り 2 つで相互レビューまで完走する。"""
        invoker = FakeProviderInvoker({"gemini": [RuntimeError("quota exceeded")]})
        h = Harness(
            invoker=invoker,
            documents={},
            available={"codex", "claude", "gemini"},
        )
        result = await h.run()

        assert result.outcome == RunOutcome.COMPLETED
        assert result.markdown is not None
        assert "### OpenAI/Codex\n" in result.markdown
        assert "### Anthropic/Claude\n" in result.markdown
        assert "### Google/Gemini" not in result.markdown
        assert "- **Google/Gemini**: error: quota exceeded" in result.markdown

        assert len(invoker.calls_for("gemini")) == 1
        [_, (_, openai_cross)] = invoker.calls_for("openai")
        [_, (_, claude_cross)] = invoker.calls_for("anthropic")
        assert "## Anthropic/Claude" in openai_cross
        assert "## OpenAI/Codex" in claude_cross
        for prompt in (openai_cross, claude_cross):
            assert "Google/Gemini" not in prompt

    async def test_single_success_skips_cross_review(self) -> None:
        invoker = FakeProviderInvoker({"anthropic": [RuntimeError("boom")]})
        h = Harness(invoker=invoker)
        result = await h.run()

        assert result.outcome == RunOutcome.COMPLETED
        assert len(invoker.calls) == 2
        assert result.markdown is not None
        assert "- **Anthropic/Claude**: error: boom" in result.markdown
        assert "Not enough successful agents" in result.markdown

    async def test_cross_failure_keeps_run_successful(self) -> None:
        invoker = FakeProviderInvoker(
            {"anthropic": ["Claude first pass", RuntimeError("cross down")]}
        )
        h = Harness(invoker=invoker)
        result = await h.run()

        assert result.outcome == RunOutcome.COMPLETED
        assert result.markdown is not None
        assert "Claude first pass" in result.markdown
        assert "Anthropic/Claude on Other Agents" not in result.markdown
        assert "OpenAI/Codex on Other Agents" in result.markdown


class TestRunReviewDiffTruncation:
    async def test_truncated_diff_reported(self) -> None:
        gateway = FakeVcsGateway(diff="x" * 50)
        h = Harness(
            gateway=gateway,
            documents={PROJECT_CONFIG: {"defaults": {"max_diff_bytes": 10}}},
        )
        await h.run()

        assert ("status", "fetch", "Diff truncated to 10 bytes") in h.reporter.events
        _, prompt = h.invoker.calls_for("openai")[0]
        assert "x" * 10 + TRUNCATION_SENTINEL in prompt
        assert "x" * 11 not in prompt
