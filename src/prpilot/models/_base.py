"""全ドメインモデルの基底クラスと共通ユーティリティ。"""

from enum import StrEnum
from typing import TypeVar

from pydantic import BaseModel, ConfigDict


class PrpilotBaseModel(BaseModel):
    """全ドメインモデルの基底クラス。extra="forbid" かつ不変。"""

    model_config = ConfigDict(extra="forbid", frozen=True)


E = TypeVar("E", bound=StrEnum)


def normalize_enum_value(
    v: object, enum_cls: type[E], aliases: dict[str, str] | None = None
) -> object:
    """StrEnum 入力を正規化する（大文字小文字非依存）。

    str 入力を enum_cls のメンバー値、または aliases のキーと
    case-insensitive でマッチし、正規の値文字列に変換する。
    マッチしない入力はそのまま返し、後続の Pydantic バリデーションに委ねる。

    Args:
        v: バリデーション対象の入力値。
        enum_cls: マッチ対象の StrEnum クラス。
        aliases: 別名 → 正規値の対応表（キーは小文字）。

    Returns:
        正規化された値文字列、またはマッチしない場合は入力値そのまま。
    """
    if isinstance(v, str):
        lowered = v.strip().lower()
        for member in enum_cls:
            if lowered == member.value.lower():
                return member.value
        if aliases is not None and lowered in aliases:
            return aliases[lowered]
    return v
