"""言語の解決（Accept-Languageヘッダー・多言語フィールド）"""
from typing import Any, Optional


def parse_accept_language(header: Optional[str]) -> list[str]:
    """
    Accept-Languageヘッダーを優先度順の言語コード（プライマリタグ）に変換

    q値の降順。同じq値はヘッダー内の順序を保つ。q=0と"*"は除外する。

    Example:
        >>> parse_accept_language("fr-FR,fr;q=0.9,en;q=0.8")
        ['fr', 'fr', 'en']
    """
    if not header:
        return []

    entries: list[tuple[float, int, str]] = []
    for position, part in enumerate(header.split(",")):
        pieces = [piece.strip() for piece in part.split(";")]
        tag = pieces[0]
        if not tag or tag == "*":
            continue

        quality = 1.0
        for param in pieces[1:]:
            if param.lower().startswith("q="):
                try:
                    quality = float(param[2:])
                except ValueError:
                    quality = 0.0
        if quality <= 0:
            continue

        entries.append((quality, position, tag.split("-")[0].lower()))

    entries.sort(key=lambda entry: (-entry[0], entry[1]))
    return [code for _, _, code in entries]


def resolve_language(
    explicit: Optional[str],
    accept_language: Optional[str],
    default: str,
) -> str:
    """
    リクエストの言語を決定

    明示的な指定 > Accept-Languageの最優先言語 > デフォルト言語
    """
    if explicit and explicit.strip():
        return explicit.strip().lower()

    languages = parse_accept_language(accept_language)
    if languages:
        return languages[0]

    return default


def resolve_localized(value: Any, language: str) -> str:
    """
    多言語フィールドを単一の文字列に解決

    要求言語の値が無ければ、辞書の挿入順で最初の値にフォールバックする
    """
    if isinstance(value, dict):
        if value.get(language):
            return str(value[language])
        for candidate in value.values():
            if candidate:
                return str(candidate)
        return ""

    if value is None:
        return ""

    return str(value)
