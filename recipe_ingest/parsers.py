"""
===============================================================================
parsers.py: Pure parsers for JSON-LD field values
===============================================================================

-------------------------------------------------------------------------------
Purpose:
    Small, side-effect free conversions used by the recipe transformer:
        • ISO-8601 style durations ("PT1H30M") → whole minutes
        • nutrition strings ("250 kcal", "12,5g") → float
        • quantities ("2", "1,5", "1/2", "1 1/2") → float
        • Swedish ingredient lines ("ca 4 dl vatten") → ParsedIngredient

-------------------------------------------------------------------------------
Ingredient line grammar:
    [ca[.]] QUANTITY [UNIT][.] NAME
        QUANTITY = mixed fraction | fraction | integer/decimal ("," or ".")
        UNIT     = one of knowledgebase.UNITS, longest first, not followed
                   directly by another letter
    A line that does not start with a quantity is kept whole as the name.

-------------------------------------------------------------------------------
Notes:
    • Every parser returns None instead of raising on bad input.
    • raw_text is the trimmed input line and is never altered.

===============================================================================
"""
from __future__ import annotations

import math
import re
from typing import Any, Optional

from recipe_ingest.datasets import ParsedIngredient
from recipe_ingest.knowledgebase import UNITS

# ================== Durations ==================
_DURATION_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$", re.I)


def parse_duration_minutes(value: Any) -> Optional[int]:
    if not value or not isinstance(value, str):
        return None
    m = _DURATION_RE.match(value.strip())
    if not m:
        return None
    hours, minutes, seconds = (int(g or 0) for g in m.groups())
    total = hours * 60 + minutes + math.ceil(seconds / 60)
    return total if total > 0 else None


# ================== Numbers ==================
_LEADING_NUMBER_RE = re.compile(r"\d*\.?\d+")


def parse_nutrition_value(value: Any) -> Optional[float]:
    """'250 kcal' -> 250.0, '12,5g' -> 12.5; None for empty or unparseable input."""
    if value is None or isinstance(value, bool):
        return None
    s = re.sub(r"[^\d.,]", "", str(value)).replace(",", ".", 1)
    m = _LEADING_NUMBER_RE.match(s)
    return float(m.group()) if m else None


_MIXED_RE = re.compile(r"^(\d+)\s+(\d+)/(\d+)$")
_FRACTION_RE = re.compile(r"^(\d+)/(\d+)$")


def parse_fraction_or_number(text: str) -> Optional[float]:
    t = text.strip().replace(",", ".", 1)

    m = _MIXED_RE.match(t)
    if m:
        whole, num, den = (int(g) for g in m.groups())
        return whole + num / den if den else None

    m = _FRACTION_RE.match(t)
    if m:
        num, den = int(m.group(1)), int(m.group(2))
        return num / den if den else None

    try:
        return float(t)
    except ValueError:
        return None


# ================== Ingredient lines ==================
def _build_ingredient_re() -> re.Pattern:
    units = "|".join(sorted(UNITS, key=len, reverse=True))
    return re.compile(
        r"^(?:ca\.?\s+)?"
        r"(\d+\s+\d+/\d+|\d+/\d+|\d+(?:[.,]\d+)?)"
        r"\s*"
        r"(?:(" + units + r")(?![^\W\d_]))?"
        r"\.?\s*"
        r"(.*)$",
        re.I | re.S,
    )


_INGREDIENT_RE = _build_ingredient_re()


def parse_ingredient(raw: str) -> ParsedIngredient:
    raw_text = (raw or "").strip()
    m = _INGREDIENT_RE.match(raw_text)
    if not m:
        return ParsedIngredient(quantity=None, unit=None, name=raw_text or None, raw_text=raw_text)

    qty_str, unit, rest = m.groups()
    name = rest.strip() if rest else ""
    return ParsedIngredient(
        quantity=parse_fraction_or_number(qty_str),
        unit=unit.lower() if unit else None,
        name=name or None,
        raw_text=raw_text,
    )
