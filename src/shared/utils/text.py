"""テキスト処理ユーティリティ"""

import re
from typing import Optional


def normalize_text(text: Optional[str]) -> Optional[str]:
    """
    テキストを正規化

    - 前後の空白を除去
    - 連続する空白を1つに
    - 全角スペースを半角スペースに変換
    """
    if not text:
        return None

    text = text.replace("　", " ")
    text = re.sub(r"\s+", " ", text)
    text = text.strip()

    return text if text else None


def normalize_lookup_key(text: str) -> str:
    """
    キャッシュキー用に正規化（小文字化 + normalize_text）

    Args:
        text: 住所などの文字列

    Returns:
        str: 正規化された文字列（空の場合は空文字）
    """
    return (normalize_text(text) or "").lower()


def escape_filter_value(value: str) -> str:
    """Meilisearchのフィルタ式で使う文字列リテラルをエスケープ"""
    return value.replace("\\", "\\\\").replace('"', '\\"')
