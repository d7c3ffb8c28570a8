"""Query variants that widen literal matching in the relational fallback.

A shopper typing on the wrong keyboard layout ("ds,jh" instead of "выбор"),
or spelling a Russian product name in Latin letters, still deserves results.
:func:`generate_variants` expands the raw query into a short, ordered list of
alternate spellings:

    1) keyboard layout swap (ЙЦУКЕН <-> QWERTY physical key positions);
    2) Cyrillic -> Latin transliteration;
    3) Latin -> Cyrillic reverse transliteration (lossy on purpose);
    4) stripped form with punctuation and spaces removed, useful for codes.

The original query always comes first and duplicates are dropped.
"""
from __future__ import annotations

import logging
import re
from typing import Tuple

logger = logging.getLogger(__name__)

_RU_LAYOUT = "йцукенгшщзхъфывапролджэячсмитьбю"
_EN_LAYOUT = "qwertyuiop[]asdfghjkl;'zxcvbnm,."

# Punctuation keys have no upper-case form, so the reverse direction maps them
# to lower-case Cyrillic letters.
_RU_TO_EN_LAYOUT = str.maketrans(
    _RU_LAYOUT + _RU_LAYOUT.upper(), _EN_LAYOUT + _EN_LAYOUT.upper()
)
_EN_TO_RU_LAYOUT = str.maketrans(
    {
        **dict(zip(_EN_LAYOUT, _RU_LAYOUT)),
        **{en.upper(): ru.upper() for en, ru in zip(_EN_LAYOUT, _RU_LAYOUT) if en.isalpha()},
    }
)

RU_TO_LATIN = {
    "а": "a",
    "б": "b",
    "в": "v",
    "г": "g",
    "д": "d",
    "е": "e",
    "ё": "e",
    "ж": "zh",
    "з": "z",
    "и": "i",
    "й": "y",
    "к": "k",
    "л": "l",
    "м": "m",
    "н": "n",
    "о": "o",
    "п": "p",
    "р": "r",
    "с": "s",
    "т": "t",
    "у": "u",
    "ф": "f",
    "х": "h",
    "ц": "ts",
    "ч": "ch",
    "ш": "sh",
    "щ": "sch",
    "ъ": "",
    "ы": "y",
    "ь": "",
    "э": "e",
    "ю": "yu",
    "я": "ya",
}

# Single letters only, so "c" and "ts" do not meet, and "u"/"y" both land on
# "у". The collisions widen recall and are kept.
LATIN_TO_RU = {
    "a": "а",
    "b": "б",
    "v": "в",
    "g": "г",
    "d": "д",
    "e": "е",
    "z": "з",
    "i": "и",
    "k": "к",
    "l": "л",
    "m": "м",
    "n": "н",
    "o": "о",
    "p": "п",
    "r": "р",
    "s": "с",
    "t": "т",
    "u": "у",
    "f": "ф",
    "h": "х",
    "c": "ц",
    "y": "у",
}

_TO_LATIN = str.maketrans(RU_TO_LATIN)
_TO_CYRILLIC = str.maketrans(LATIN_TO_RU)

# Everything except ASCII letters/digits and Cyrillic letters.
_STRIP_RE = re.compile(r"[^0-9A-Za-zА-Яа-яЁё]+")


def convert_keyboard_layout(text: str) -> str:
    """Retype ``text`` as if the other keyboard layout had been active.

    Cyrillic -> Latin is tried first; only when that changes nothing is the
    Latin -> Cyrillic direction applied.
    """

    converted = text.translate(_RU_TO_EN_LAYOUT)
    if converted != text:
        return converted
    return text.translate(_EN_TO_RU_LAYOUT)


def transliterate(text: str) -> str:
    """Lower-case and spell Cyrillic letters with Latin ones (``щ`` -> ``sch``)."""

    return text.lower().translate(_TO_LATIN)


def to_cyrillic(text: str) -> str:
    """Lower-case and map Latin letters onto their closest Cyrillic letter."""

    return text.lower().translate(_TO_CYRILLIC)


def strip_symbols(text: str) -> str:
    return _STRIP_RE.sub("", text)


_TRANSFORMS = (
    ("layout", convert_keyboard_layout),
    ("translit", transliterate),
    ("cyrillic", to_cyrillic),
    ("stripped", strip_symbols),
)


def generate_variants(query: str) -> Tuple[str, ...]:
    """Return ``query`` followed by its distinct alternate spellings."""

    variants = [query]
    for name, transform in _TRANSFORMS:
        candidate = transform(query)
        if candidate not in variants:
            variants.append(candidate)
        else:
            logger.debug("variant %s for %r adds nothing", name, query)
    logger.debug("generate_variants q=%r variants=%s", query, variants)
    return tuple(variants)
