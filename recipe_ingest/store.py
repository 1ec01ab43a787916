"""
===============================================================================
store.py: PostgreSQL access for crawled recipes and ingredient nutrition
===============================================================================

-------------------------------------------------------------------------------
Purpose:
    • Database: a small wrapper around a psycopg2 connection pool whose
      `transaction()` borrows one connection, commits on success, rolls back
      on any exception and always hands the connection back.
    • insert_recipe: one recipe row plus its ingredient rows in a single
      transaction, skipping duplicates by source_url.
    • Enrichment queries: find ingredient names lacking nutrition, upsert an
      ingredient reference row, link recipe_ingredient rows to it.

-------------------------------------------------------------------------------
Schema used (created elsewhere; this module only relies on it):
    recipe            (id, ..., source_url UNIQUE)
    recipe_ingredient (recipe_id → recipe, ingredient_id → ingredient NULL,
                       name, raw_text, quantity, unit)
    ingredient        (id, name UNIQUE, category, unit,
                       calories, protein, carbs, fat, fiber)

-------------------------------------------------------------------------------
Notes:
    • All SQL uses psycopg2 `%s` parameters.
    • A transaction never spans more than one recipe.

===============================================================================
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

import psycopg2.pool
from psycopg2.extras import Json

from recipe_ingest.config import Settings
from recipe_ingest.datasets import NormalizedRecipe, NutrientProfile

log = logging.getLogger(__name__)

POOL_MAX = 5
CONNECT_TIMEOUT_S = 5


class Database:
    def __init__(self, pool):
        self._pool = pool

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        pool = psycopg2.pool.SimpleConnectionPool(
            1, POOL_MAX,
            host=settings.db_host,
            port=settings.db_port,
            dbname=settings.db_name,
            user=settings.db_user,
            password=settings.db_password,
            sslmode="require" if settings.db_ssl else "disable",
            connect_timeout=CONNECT_TIMEOUT_S,
        )
        return cls(pool)

    @contextmanager
    def transaction(self) -> Iterator:
        conn = self._pool.getconn()
        try:
            with conn.cursor() as cur:
                yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def ping(self) -> None:
        with self.transaction() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()

    def close(self) -> None:
        self._pool.closeall()


# ================== Recipes ==================
INSERT_RECIPE_SQL = """
    INSERT INTO recipe (
        name, description, cooking_time_minutes, macronutrients,
        tags, image_url, source_url, servings, recipe_category,
        instructions, created_by, created_at, updated_at
    ) VALUES (
        %s, %s, %s, %s,
        %s, %s, %s, %s, %s,
        %s, NULL, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP
    )
    ON CONFLICT (source_url) DO NOTHING
    RETURNING id
"""

INSERT_INGREDIENT_LINE_SQL = """
    INSERT INTO recipe_ingredient (
        recipe_id, ingredient_id, name, raw_text, quantity, unit
    ) VALUES (%s, NULL, %s, %s, %s, %s)
"""


def insert_recipe(db: Database, recipe: NormalizedRecipe) -> bool:
    """
    Insert a recipe and all its ingredient lines atomically.
    Returns False when a recipe with the same source_url already exists.
    """
    macros = recipe.macronutrients.to_dict() if recipe.macronutrients else None
    with db.transaction() as cur:
        cur.execute(INSERT_RECIPE_SQL, (
            recipe.name,
            recipe.description,
            recipe.cooking_time_minutes,
            Json(macros) if macros is not None else None,
            list(recipe.tags),
            recipe.image_url,
            recipe.source_url,
            recipe.servings,
            list(recipe.recipe_category),
            list(recipe.instructions),
        ))
        row = cur.fetchone()
        if row is None:
            return False
        recipe_id = row[0]

        for ing in recipe.ingredients:
            cur.execute(INSERT_INGREDIENT_LINE_SQL, (
                recipe_id, ing.name, ing.raw_text, ing.quantity, ing.unit,
            ))
    return True


# ================== Ingredient nutrition ==================
NAMES_NEEDING_NUTRITION_SQL = """
    SELECT ri.name, COUNT(*) AS uses
    FROM recipe_ingredient ri
    LEFT JOIN ingredient i ON ri.ingredient_id = i.id
    WHERE ri.name IS NOT NULL
      AND (ri.ingredient_id IS NULL OR i.calories IS NULL)
    GROUP BY ri.name
    ORDER BY uses DESC, ri.name
"""

UPSERT_INGREDIENT_SQL = """
    INSERT INTO ingredient (name, category, unit, calories, protein, carbs, fat, fiber)
    VALUES (%s, %s, 'g', %s, %s, %s, %s, %s)
    ON CONFLICT (name) DO UPDATE SET
        calories = COALESCE(EXCLUDED.calories, ingredient.calories),
        protein = COALESCE(EXCLUDED.protein, ingredient.protein),
        carbs = COALESCE(EXCLUDED.carbs, ingredient.carbs),
        fat = COALESCE(EXCLUDED.fat, ingredient.fat),
        fiber = COALESCE(EXCLUDED.fiber, ingredient.fiber)
    RETURNING id
"""

LINK_INGREDIENT_SQL = """
    UPDATE recipe_ingredient SET ingredient_id = %s
    WHERE name = %s AND ingredient_id IS NULL
"""


def ingredient_names_needing_nutrition(db: Database) -> List[str]:
    """Distinct ingredient names that are unlinked or linked to a row without calories, most used first."""
    with db.transaction() as cur:
        cur.execute(NAMES_NEEDING_NUTRITION_SQL)
        return [r[0] for r in cur.fetchall()]


def upsert_ingredient(cur, name: str, category: Optional[str], profile: NutrientProfile):
    cur.execute(UPSERT_INGREDIENT_SQL, (
        name, category or "other",
        profile.calories, profile.protein, profile.carbs, profile.fat, profile.fiber,
    ))
    row = cur.fetchone()
    return row[0] if row else None


def link_ingredient(cur, ingredient_id, name: str) -> int:
    cur.execute(LINK_INGREDIENT_SQL, (ingredient_id, name))
    return cur.rowcount


def save_ingredient_nutrition(db: Database, name: str, category: Optional[str],
                              profile: NutrientProfile) -> int:
    """Upsert the ingredient row for `name` and link unlinked recipe lines to it; returns lines linked."""
    with db.transaction() as cur:
        ingredient_id = upsert_ingredient(cur, name, category, profile)
        if ingredient_id is None:
            return 0
        return link_ingredient(cur, ingredient_id, name)
