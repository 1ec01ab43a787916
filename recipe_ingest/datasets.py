"""
===============================================================================
datasets.py: Core data models for the ingestion pipeline
===============================================================================

-------------------------------------------------------------------------------
Purpose:
    Defines the dataclasses passed between the pipeline stages:
        • ParsedIngredient: one ingredient line split into quantity/unit/name
        • Macronutrients: per-recipe macro block taken from JSON-LD
        • NormalizedRecipe: a transformed recipe ready for the store
        • FoodItem / NutrientValue / NutrientProfile: Livsmedelsverket
          reference data used by the enrichment job
        • CrawlStats / EnrichStats: running tallies for the two jobs

Design Principles:
    • Transient objects only; nothing here is persisted directly, the store
      projects NormalizedRecipe into recipe / recipe_ingredient rows.
    • Macronutrients.to_dict() emits the key names of the stored macro JSON.

===============================================================================
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class ParsedIngredient:
    """
    Ingredient line model.
    - quantity: numeric amount, None when the line has no leading quantity
    - unit: one of knowledgebase.UNITS (lowercased) or None
    - name: remainder of the line, None when empty
    - raw_text: the trimmed input line, always kept verbatim
    """
    quantity: Optional[float]
    unit: Optional[str]
    name: Optional[str]
    raw_text: str


@dataclass
class Macronutrients:
    calories: Optional[float] = None
    fat: Optional[float] = None
    carbs: Optional[float] = None
    protein: Optional[float] = None
    fiber: Optional[float] = None

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {
            "calories": self.calories,
            "fatGrams": self.fat,
            "carbGrams": self.carbs,
            "proteinGrams": self.protein,
            "fiberGrams": self.fiber,
        }


@dataclass
class NormalizedRecipe:
    """
    Recipe model ready for storage.
    - source_url is the store's uniqueness key
    - tags: de-duplicated union of category and cooking-method tokens
    - instructions: ordered step texts, blank steps dropped
    """
    name: str
    source_url: str
    description: Optional[str] = None
    cooking_time_minutes: Optional[int] = None
    macronutrients: Optional[Macronutrients] = None
    tags: List[str] = field(default_factory=list)
    image_url: Optional[str] = None
    servings: Optional[int] = None
    recipe_category: List[str] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)
    ingredients: List[ParsedIngredient] = field(default_factory=list)


# ================== Reference data (Livsmedelsverket) ==================
@dataclass
class FoodItem:
    number: int            # livsmedel `nummer`
    name: str              # livsmedel `namn`
    group: Optional[str] = None


@dataclass
class NutrientValue:
    name: str              # `namn`, e.g. "Energi (kcal)"
    code: str              # `forkortning`, e.g. "Ener"
    value: Optional[float]
    unit: str              # `enhet`, e.g. "kcal", "g"


@dataclass
class NutrientProfile:
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    fiber: Optional[float] = None

    def is_empty(self) -> bool:
        return self.calories is None and self.protein is None


# ================== Run tallies ==================
@dataclass
class CrawlStats:
    crawled: int = 0
    inserted: int = 0
    skipped: int = 0
    errors: int = 0


@dataclass
class EnrichStats:
    candidates: int = 0
    enriched: int = 0
    skipped: int = 0
    errors: int = 0
