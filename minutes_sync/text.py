from __future__ import annotations

import html
import re
from typing import Dict


# UTF-8 bytes that were decoded as cp1252/Latin-1 somewhere upstream.
_MOJIBAKE: Dict[str, str] = {
    "Ã©": "é",
    "Ã¨": "è",
    "Ãª": "ê",
    "Ã«": "ë",
    "Ã¡": "á",
    "Ã\u00a0": "à",
    "Ã¢": "â",
    "Ã¤": "ä",
    "Ã£": "ã",
    "Ã§": "ç",
    "Ã±": "ñ",
    "Ã³": "ó",
    "Ã²": "ò",
    "Ã´": "ô",
    "Ã¶": "ö",
    "Ãµ": "õ",
    "Ãº": "ú",
    "Ã¹": "ù",
    "Ã»": "û",
    "Ã¼": "ü",
    "Ã\u00ad": "í",
    "Ã®": "î",
    "Ã¯": "ï",
    "Ã‰": "É",
    "Ã‡": "Ç",
    "Ã“": "Ó",
    "Ãš": "Ú",
    "Ã‘": "Ñ",
    "ÃŸ": "ß",
    "â€™": "’",
    "â€˜": "‘",
    "â€œ": "“",
    "â€\u009d": "”",
    "â€“": "–",
    "â€”": "—",
    "â€¦": "…",
    "â€¢": "•",
    "Â\u00a0": " ",
}

# Longest sequences first so the three-character quotes win over any prefix.
_MOJIBAKE_RE = re.compile(
    "|".join(re.escape(k) for k in sorted(_MOJIBAKE, key=len, reverse=True))
)


def repair_mojibake(text: str) -> str:
    return _MOJIBAKE_RE.sub(lambda m: _MOJIBAKE[m.group(0)], text)


def normalize_text(text: str) -> str:
    """Decode HTML entities and repair known encoding artifacts.

    Always returns a string; anything not in the substitution table is left
    untouched.
    """

    if not text:
        return ""
    return repair_mojibake(html.unescape(text))


def collapse_ws(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()
