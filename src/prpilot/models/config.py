"""設定管理モデル。

JSON 設定ファイルをマージした結果を検証する不変モデル群。
資格情報（トークン・API キー）は SecretStr で保持し、表示・ログに出さない。
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Annotated, Final

from pydantic import (
    Field,
    SecretStr,
    StrictBool,
    StringConstraints,
    ValidationInfo,
    field_validator,
    model_validator,
)

from prpilot.models._base import PrpilotBaseModel, normalize_enum_value

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIFF_BYTES: Final[int] = 120_000
DEFAULT_TIMEOUT_SECONDS: Final[int] = 600
DEFAULT_SYSTEM_PROMPT: Final[str] = (
    "You are a strict senior code reviewer. "
    "Output Markdown with sections: Critical, Major, Minor, Suggestions."
)

PARTIAL_CONTEXT_KEY: Final[str] = "partial"
"""単一ソース検証を示す検証コンテキストのキー。"""

NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]


class CommentLanguage(StrEnum):
    """レビューコメントの出力言語。"""

    EN = "en"
    KO = "ko"


_LANGUAGE_ALIASES: Final[dict[str, str]] = {
    "english": CommentLanguage.EN.value,
    "kr": CommentLanguage.KO.value,
    "korean": CommentLanguage.KO.value,
}


class ApiType(StrEnum):
    """API モードで使用するプロバイダーファミリー。"""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class DefaultsConfig(PrpilotBaseModel):
    """全体のデフォルト設定。

    comment_language は未知の値をデフォルト（en）にフォールバックする。
    """

    max_diff_bytes: int = Field(default=DEFAULT_MAX_DIFF_BYTES, gt=0)
    system_prompt: NonEmptyStr = DEFAULT_SYSTEM_PROMPT
    review_guide_path: NonEmptyStr | None = None
    comment_language: CommentLanguage = CommentLanguage.EN
    timeout_seconds: int = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)

    @field_validator("comment_language", mode="before")
    @classmethod
    def _normalize_language(cls, v: object) -> object:
        if v is None:
            return CommentLanguage.EN.value
        normalized = normalize_enum_value(v, CommentLanguage, _LANGUAGE_ALIASES)
        if isinstance(normalized, str) and normalized not in {m.value for m in CommentLanguage}:
            logger.warning(
                "Unknown comment_language '%s'; falling back to '%s'",
                v,
                CommentLanguage.EN.value,
            )
            return CommentLanguage.EN.value
        return normalized


class HostConfig(PrpilotBaseModel):
    """VCS ホストごとの認証・エンドポイント設定。

    トークンの解決順: token（直接値） → token_env → token_command。
    """

    token: SecretStr | None = None
    token_env: NonEmptyStr | None = None
    token_command: tuple[NonEmptyStr, ...] | None = Field(default=None, min_length=1)
    api_base: NonEmptyStr | None = None


class ProviderConfig(PrpilotBaseModel):
    """プロバイダー個別設定。

    API 資格情報（api_key / api_key_env）が解決できれば API モード、
    できなければ command による CLI モードで実行される。
    """

    enabled: StrictBool = True
    display_name: NonEmptyStr | None = None
    command: NonEmptyStr | None = None
    args: tuple[str, ...] = ()
    use_stdin: StrictBool = True
    model: NonEmptyStr | None = None
    api_type: ApiType | None = None
    api_base: NonEmptyStr | None = None
    api_key: SecretStr | None = None
    api_key_env: NonEmptyStr | None = None

    @field_validator("api_type", mode="before")
    @classmethod
    def _normalize_api_type(cls, v: object) -> object:
        return normalize_enum_value(v, ApiType)

    @property
    def has_api_credential_config(self) -> bool:
        """API 資格情報の設定（値または環境変数名）があるかどうか。"""
        return self.api_key is not None or self.api_key_env is not None


class PrpilotConfig(PrpilotBaseModel):
    """全設定項目を統合した不変モデル。

    デフォルト値のみで有効なインスタンスを構築可能。
    """

    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    hosts: dict[str, HostConfig] = Field(default_factory=dict)
    providers: dict[str, ProviderConfig] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_api_families(self, info: ValidationInfo) -> PrpilotConfig:
        # 単一ソースの検証時は他ソースとの組み合わせが未確定のためスキップする
        if info.context and info.context.get(PARTIAL_CONTEXT_KEY):
            return self
        for provider_id, provider in self.providers.items():
            if provider.has_api_credential_config and resolve_api_type(
                provider_id, provider
            ) is None:
                msg = (
                    f"Provider '{provider_id}' configures an API credential "
                    "but no known api_type (openai, anthropic, gemini)"
                )
                raise ValueError(msg)
        return self


def resolve_api_type(provider_id: str, provider: ProviderConfig) -> ApiType | None:
    """プロバイダーの API ファミリーを解決する。

    api_type が明示されていればそれを、なければプロバイダー ID が
    既知のファミリー名と一致する場合にそのファミリーを返す。
    """
    if provider.api_type is not None:
        return provider.api_type
    if provider_id in {m.value for m in ApiType}:
        return ApiType(provider_id)
    return None
