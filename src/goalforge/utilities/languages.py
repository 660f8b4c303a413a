"""
Response-language table.

The run's ``language`` is a display name (e.g. ``"Français"``) that the
prompts pass to the backend as a response-language directive.  Callers
may hand in either a locale code or a name; ``find_language`` resolves
both and falls back to English.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Language:
    code: str
    name: str
    flag: str


ENGLISH = Language(code="en", name="English", flag="🇺🇸")

LANGUAGES: List[Language] = [
    ENGLISH,
    Language(code="fr", name="Français", flag="🇫🇷"),
    Language(code="es", name="Español", flag="🇪🇸"),
    Language(code="de", name="Deutsch", flag="🇩🇪"),
    Language(code="it", name="Italiano", flag="🇮🇹"),
    Language(code="pt", name="Português", flag="🇵🇹"),
    Language(code="nl", name="Nederlands", flag="🇳🇱"),
    Language(code="pl", name="Polski", flag="🇵🇱"),
    Language(code="ru", name="Pусский", flag="🇷🇺"),
    Language(code="uk", name="Українська", flag="🇺🇦"),
    Language(code="hu", name="Magyar", flag="🇭🇺"),
    Language(code="sk", name="Slovensky", flag="🇸🇰"),
    Language(code="tr", name="Türkçe", flag="🇹🇷"),
    Language(code="ja", name="日本語", flag="🇯🇵"),
    Language(code="ko", name="한국어", flag="🇰🇷"),
    Language(code="zh", name="简体中文", flag="🇨🇳"),
    Language(code="zhtw", name="繁體中文", flag="🇹🇼"),
    Language(code="hr", name="Hrvatski", flag="🇭🇷"),
    Language(code="lt", name="Lietuvių", flag="🇱🇹"),
    Language(code="ro", name="Română", flag="🇷🇴"),
]

_BY_KEY = {}
for _lang in LANGUAGES:
    _BY_KEY[_lang.code.lower()] = _lang
    _BY_KEY[_lang.name.lower()] = _lang


def find_language(code_or_name: str | None) -> Language:
    """Resolve a locale code (``"fr"``, ``"fr-CA"``) or display name.

    Unknown or blank values resolve to English.
    """
    if not code_or_name:
        return ENGLISH
    key = code_or_name.strip().lower()
    if key in _BY_KEY:
        return _BY_KEY[key]
    compact = key.replace("-", "").replace("_", "")
    if compact in _BY_KEY:
        return _BY_KEY[compact]
    base = key.replace("_", "-").split("-")[0]
    return _BY_KEY.get(base, ENGLISH)
