"""
===============================================================================
transform.py: JSON-LD Recipe → NormalizedRecipe
===============================================================================

-------------------------------------------------------------------------------
Purpose:
    Maps one schema.org Recipe object (as returned by jsonld.extract_recipe)
    and the URL it was fetched from into a NormalizedRecipe for the store.

    Field rules:
        • name           required; a document without it is rejected (None)
        • image          string | [string, ...] | {"url": ...}
        • cooking time   totalTime, falling back to cookTime
        • macronutrients only when a nutrition block exists; each field is
                         parsed on its own and may be None
        • servings       first run of digits in recipeYield
        • category/tags  comma-split tokens; tags add cookingMethod, de-duped
        • instructions   strings or HowToStep objects → plain text, blanks dropped
        • ingredients    every line through parsers.parse_ingredient

-------------------------------------------------------------------------------
Notes:
    • Only the name check can reject a document; every other field degrades
      to None / [] on odd input.

===============================================================================
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Union

from recipe_ingest.datasets import Macronutrients, NormalizedRecipe
from recipe_ingest.parsers import parse_duration_minutes, parse_ingredient, parse_nutrition_value

# A recipeInstructions entry: plain text, or a HowToStep-like {"text": ...} object.
Step = Union[str, Dict[str, Any]]


def _image_url(image: Any) -> Optional[str]:
    if isinstance(image, str):
        return image
    if isinstance(image, list) and image:
        return image[0] if isinstance(image[0], str) else None
    if isinstance(image, dict):
        return image.get("url") or None
    return None


def _macros(nutrition: Any) -> Optional[Macronutrients]:
    if not isinstance(nutrition, dict):
        return None
    return Macronutrients(
        calories=parse_nutrition_value(nutrition.get("calories")),
        fat=parse_nutrition_value(nutrition.get("fatContent")),
        carbs=parse_nutrition_value(nutrition.get("carbohydrateContent")),
        protein=parse_nutrition_value(nutrition.get("proteinContent")),
        fiber=parse_nutrition_value(nutrition.get("fiberContent")),
    )


def _servings(recipe_yield: Any) -> Optional[int]:
    if not recipe_yield:
        return None
    m = re.search(r"\d+", str(recipe_yield))
    return int(m.group()) if m else None


def _split_tokens(value: Any) -> List[str]:
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    if isinstance(value, list):
        return [t for v in value if isinstance(v, str) for t in _split_tokens(v)]
    return []


def _step_text(step: Step) -> str:
    if isinstance(step, str):
        return step.strip()
    if isinstance(step, dict) and isinstance(step.get("text"), str):
        return step["text"].strip()
    return ""


def _instructions(steps: Any) -> List[str]:
    if not isinstance(steps, list):
        return []
    return [t for t in (_step_text(s) for s in steps) if t]


def transform_recipe(doc: Dict[str, Any], source_url: str) -> Optional[NormalizedRecipe]:
    name = doc.get("name")
    if not isinstance(name, str) or not name.strip():
        return None

    description = doc.get("description")
    description = description.strip() if isinstance(description, str) else None

    category = _split_tokens(doc.get("recipeCategory"))
    tags = list(dict.fromkeys(category + _split_tokens(doc.get("cookingMethod"))))

    lines = doc.get("recipeIngredient") or []
    if not isinstance(lines, list):
        lines = [lines]

    return NormalizedRecipe(
        name=name.strip(),
        source_url=source_url,
        description=description or None,
        cooking_time_minutes=(
            parse_duration_minutes(doc.get("totalTime"))
            or parse_duration_minutes(doc.get("cookTime"))
        ),
        macronutrients=_macros(doc.get("nutrition")),
        tags=tags,
        image_url=_image_url(doc.get("image")),
        servings=_servings(doc.get("recipeYield")),
        recipe_category=category,
        instructions=_instructions(doc.get("recipeInstructions")),
        ingredients=[parse_ingredient(line) for line in lines if isinstance(line, str)],
    )
