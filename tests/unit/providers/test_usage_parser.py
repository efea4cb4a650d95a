"""CLI 使用量パーサーのテスト。"""

from prpilot.models.review import TokenUsage
from prpilot.providers import parse_usage


class TestParseUsage:
    """ベストエフォートの使用量抽出を検証。"""

    def test_all_metrics_from_stdout(self) -> None:
        stdout = "review...\nprompt_tokens: 120\ncompletion_tokens: 30\ntotal_tokens: 150\n"
        assert parse_usage(stdout, "") == TokenUsage(
            prompt_tokens=120, completion_tokens=30, total_tokens=150
        )

    def test_metrics_from_stderr(self) -> None:
        stderr = "Input tokens: 1000\nOutput tokens: 20"
        usage = parse_usage("LGTM", stderr)
        assert usage.prompt_tokens == 1000
        assert usage.completion_tokens == 20

    def test_total_derived_from_parts(self) -> None:
        usage = parse_usage("input tokens 10\noutput tokens 5", "")
        assert usage.total_tokens == 15

    def test_total_only(self) -> None:
        usage = parse_usage("", "tokens total: 999")
        assert usage == TokenUsage(total_tokens=999)

    def test_key_case_insensitive(self) -> None:
        assert parse_usage("PROMPT TOKENS = 7", "").prompt_tokens == 7

    def test_number_after_key_on_next_line(self) -> None:
        usage = parse_usage('{"usage": {"input_tokens":\n 42}}', "")
        assert usage.prompt_tokens == 42

    def test_nothing_found_is_unavailable(self) -> None:
        usage = parse_usage("Looks good to me.", "")
        assert not usage.is_available
