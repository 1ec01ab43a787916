"""
Livsmedelsverket client and ingredient-name matching.

Features:
- LivsmedelsverketClient: the full food list (fetched once per run) and the
  nutrient breakdown of one food, both through the shared rate-limited Fetcher.
- match_score / best_match: heuristic lexical scoring of an ingredient name
  against reference food names.
        100  identical after normalization
         80  reference name contains the ingredient name
         60  ingredient name contains the reference name
       0-50  shared words / max(word counts) * 50
          0  nothing shared
- extract_macros: picks calories/protein/carbs/fat/fiber out of a nutrient
  breakdown using knowledgebase.NUTRIENT_RULES.

API docs: https://dataportal.livsmedelsverket.se/livsmedel/swagger/index.html
Dependencies: requests (via fetcher.Fetcher)
"""
from __future__ import annotations

import re
from typing import Any, List, Optional, Tuple

from recipe_ingest.datasets import FoodItem, NutrientProfile, NutrientValue
from recipe_ingest.fetcher import Fetcher
from recipe_ingest.knowledgebase import NUTRIENT_RULES

EXACT_SCORE = 100.0
REFERENCE_CONTAINS_SCORE = 80.0
INGREDIENT_CONTAINS_SCORE = 60.0
OVERLAP_SCALE = 50.0
DEFAULT_THRESHOLD = 30.0
FOOD_PAGE_SIZE = 2500


# =============== Matching ===============================================
def normalize_name(text: str) -> str:
    return re.sub(r"[,()]", "", (text or "").lower()).strip()


def match_score(ingredient_name: str, reference_name: str) -> float:
    a = normalize_name(ingredient_name)
    b = normalize_name(reference_name)
    if not a or not b:
        return 0.0

    if a == b:
        return EXACT_SCORE
    if a in b:
        return REFERENCE_CONTAINS_SCORE
    if b in a:
        return INGREDIENT_CONTAINS_SCORE

    words_a = a.split()
    words_b = b.split()
    common = set(words_a) & set(words_b)
    if not common:
        return 0.0
    return len(common) / max(len(words_a), len(words_b)) * OVERLAP_SCALE


def best_match(ingredient_name: str, foods: List[FoodItem]) -> Tuple[Optional[FoodItem], float]:
    """Highest-scoring food; the earliest one wins ties. (None, 0.0) when nothing scores."""
    best, best_score = None, 0.0
    for item in foods:
        s = match_score(ingredient_name, item.name)
        if s > best_score:
            best, best_score = item, s
    return best, best_score


# =============== Nutrient extraction ====================================
def _rule_for(value: NutrientValue) -> Optional[str]:
    code = (value.code or "").lower()
    name = (value.name or "").lower()
    unit = (value.unit or "").lower()
    for field, codes, exact_names, substrings, required_unit in NUTRIENT_RULES:
        if required_unit and unit != required_unit:
            continue
        if code in codes or name in exact_names or any(s in name for s in substrings):
            return field
    return None


def extract_macros(values: List[NutrientValue]) -> NutrientProfile:
    profile = NutrientProfile()
    for v in values:
        field = _rule_for(v)
        if field and getattr(profile, field) is None and v.value is not None:
            setattr(profile, field, v.value)
    return profile


# =============== API client =============================================
def _to_float(x: Any) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        return float(x)
    try:
        return float(str(x).replace(",", ".").strip())
    except ValueError:
        return None


class LivsmedelsverketClient:
    def __init__(self, fetcher: Fetcher, base_url: str, page_size: int = FOOD_PAGE_SIZE):
        self.fetcher = fetcher
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size

    def _food_page(self, offset: int) -> Tuple[List[Any], Optional[int]]:
        """One page of the food list and the total record count (None when unpaged)."""
        data = self.fetcher.get_json(f"{self.base_url}/livsmedel?offset={offset}&limit={self.page_size}")
        if not isinstance(data, dict):
            return list(data or []), None
        total = (data.get("_meta") or {}).get("totalRecords")
        return list(data.get("livsmedel") or []), (int(total) if total is not None else None)

    def list_foods(self) -> List[FoodItem]:
        """Every food in the reference database, following `_meta` paging to the end."""
        items, offset = [], 0
        while True:
            page, total = self._food_page(offset)
            items.extend(page)
            offset += len(page)
            if not page or total is None or offset >= total:
                break

        foods = []
        for it in items:
            if not isinstance(it, dict) or it.get("nummer") is None or not it.get("namn"):
                continue
            foods.append(FoodItem(number=int(it["nummer"]), name=str(it["namn"]), group=it.get("grupp")))
        return foods

    def nutrient_values(self, number: int) -> List[NutrientValue]:
        data = self.fetcher.get_json(f"{self.base_url}/livsmedel/{number}/naringsvarden")
        return [
            NutrientValue(
                name=str(n.get("namn") or ""),
                code=str(n.get("forkortning") or ""),
                value=_to_float(n.get("varde")),
                unit=str(n.get("enhet") or ""),
            )
            for n in (data or [])
            if isinstance(n, dict)
        ]
