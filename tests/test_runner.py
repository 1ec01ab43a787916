from __future__ import annotations

import json

import pytest
from conftest import FakeFetcher, urlset

from recipe_ingest.datasets import FoodItem, NutrientValue
from runner import format_summary, process_url, run_crawl, run_enrichment, split_limit

SITEMAP = "https://www.ica.se/sitemap.xml"
R1 = "https://www.ica.se/recept/kycklinggryta-med-curry-723456/"
R2 = "https://www.ica.se/recept/pannkakor-100/"
R3 = "https://www.ica.se/recept/trasig-sida-200/"

RECIPE_PAGE = """
<html><head>
<script type="application/ld+json">
{"@context": "https://schema.org", "@graph": [
  {"@type": "WebPage", "name": "Kycklinggryta"},
  {"@type": "Recipe",
   "name": "Kycklinggryta med curry",
   "image": ["https://assets.icanet.se/kycklinggryta.jpg"],
   "totalTime": "PT45M",
   "recipeYield": "4 portioner",
   "recipeCategory": "Middag, Kyckling",
   "nutrition": {"calories": "520 kcal", "proteinContent": "38 g", "fatContent": "22 g",
                 "carbohydrateContent": "41 g", "fiberContent": "5 g"},
   "recipeIngredient": ["600 g kycklingfilé", "2 msk röd curry"],
   "recipeInstructions": [{"@type": "HowToStep", "text": "Bryn kycklingen."}, "Tillsätt curry."]}
]}
</script></head><body></body></html>
"""

NO_JSONLD_PAGE = "<html><body><h1>Pannkakor</h1></body></html>"


def test_split_limit():
    assert split_limit("all", 5) == [("ica", 3), ("koket", 2)]
    assert split_limit("all", 1) == [("ica", 1), ("koket", 0)]
    assert split_limit("koket", 7) == [("koket", 7)]


def test_recipe_page_lands_in_store(db, pool):
    fetcher = FakeFetcher({SITEMAP: urlset(R1), R1: RECIPE_PAGE})
    stats = run_crawl("ica", 1, fetcher, db)

    assert (stats.crawled, stats.inserted, stats.skipped, stats.errors) == (1, 1, 0, 0)
    name, minutes, servings, macros = pool.raw.execute(
        "SELECT name, cooking_time_minutes, servings, macronutrients FROM recipe"
    ).fetchone()
    assert (name, minutes, servings) == ("Kycklinggryta med curry", 45, 4)
    assert set(json.loads(macros)) == {"calories", "fatGrams", "carbGrams", "proteinGrams", "fiberGrams"}
    lines = pool.raw.execute("SELECT quantity, unit, name FROM recipe_ingredient ORDER BY id").fetchall()
    assert lines == [(600.0, "g", "kycklingfilé"), (2.0, "msk", "röd curry")]


def test_one_bad_url_does_not_stop_the_run(db, pool):
    fetcher = FakeFetcher({SITEMAP: urlset(R3, R2, R1), R2: NO_JSONLD_PAGE, R1: RECIPE_PAGE})
    stats = run_crawl("ica", 3, fetcher, db)
    assert (stats.crawled, stats.inserted, stats.skipped, stats.errors) == (3, 1, 1, 1)
    assert pool.raw.execute("SELECT COUNT(*) FROM recipe").fetchone()[0] == 1


def test_second_crawl_counts_duplicates_as_skipped(db):
    fetcher = FakeFetcher({SITEMAP: urlset(R1), R1: RECIPE_PAGE})
    run_crawl("ica", 1, fetcher, db)
    stats = run_crawl("ica", 1, fetcher, db)
    assert (stats.inserted, stats.skipped) == (0, 1)


def test_process_url_outcomes(db):
    nameless = RECIPE_PAGE.replace('"name": "Kycklinggryta med curry",', "")
    fetcher = FakeFetcher({R1: nameless, R2: NO_JSONLD_PAGE})
    assert process_url(fetcher, db, R1).reason == "transform failed"
    assert process_url(fetcher, db, R2).reason == "no structured data"
    outcome = process_url(fetcher, db, R3)
    assert outcome.status == "error"
    assert "404" in outcome.reason


def test_nothing_discovered_returns_zero_stats(db):
    stats = run_crawl("koket", 3, FakeFetcher(), db)
    assert (stats.crawled, stats.inserted, stats.skipped, stats.errors) == (0, 0, 0, 0)


# =============== Enrichment =============================================
class FakeClient:
    def __init__(self, foods, breakdowns, failing=()):
        self.foods = foods
        self.breakdowns = breakdowns
        self.failing = set(failing)
        self.detail_calls = []

    def list_foods(self):
        return self.foods

    def nutrient_values(self, number):
        self.detail_calls.append(number)
        if number in self.failing:
            raise RuntimeError("boom")
        return self.breakdowns.get(number, [])


FOODS = [
    FoodItem(10, "Kycklingfilé rå", "Fågel"),
    FoodItem(20, "Curry pulver", "Kryddor"),
    FoodItem(30, "Salt", "Kryddor"),
]

BREAKDOWNS = {
    10: [NutrientValue("Energi (kcal)", "Ener", 110.0, "kcal"), NutrientValue("Protein", "Prot", 23.0, "g")],
    30: [NutrientValue("Natrium", "Na", 38.0, "g")],
}


@pytest.fixture
def seeded(db):
    fetcher = FakeFetcher({SITEMAP: urlset(R1), R1: RECIPE_PAGE})
    run_crawl("ica", 1, fetcher, db)
    return db


def test_enrichment_links_matching_names(seeded, pool):
    client = FakeClient(FOODS, BREAKDOWNS)
    sleeps = []
    stats = run_enrichment(seeded, client, threshold=30, delay=0.2, sleep=sleeps.append)

    # "kycklingfilé" is contained in "kycklingfilé rå"; "röd curry" shares one word with "curry pulver" (25)
    assert (stats.candidates, stats.enriched, stats.skipped, stats.errors) == (2, 1, 1, 0)
    assert client.detail_calls == [10]
    assert sleeps == [0.2]
    row = pool.raw.execute("SELECT name, category, calories, protein FROM ingredient").fetchone()
    assert row == ("kycklingfilé", "Fågel", 110.0, 23.0)


def test_dry_run_fetches_no_details_and_writes_nothing(seeded, pool):
    client = FakeClient(FOODS, BREAKDOWNS)
    sleeps = []
    stats = run_enrichment(seeded, client, threshold=20, dry_run=True, sleep=sleeps.append)
    assert (stats.enriched, stats.skipped) == (2, 0)
    assert client.detail_calls == []
    assert sleeps == []
    assert pool.raw.execute("SELECT COUNT(*) FROM ingredient").fetchone()[0] == 0


def test_empty_profile_and_errors_are_counted(seeded):
    foods = [FoodItem(30, "kycklingfilé"), FoodItem(40, "röd curry")]
    client = FakeClient(foods, BREAKDOWNS, failing={40})
    sleeps = []
    stats = run_enrichment(seeded, client, sleep=sleeps.append, delay=0.5)
    assert (stats.enriched, stats.skipped, stats.errors) == (0, 1, 1)
    assert sleeps == [0.5, 0.5]


def test_enrichment_with_nothing_to_do(db):
    client = FakeClient(FOODS, BREAKDOWNS)
    stats = run_enrichment(db, client, sleep=lambda s: None)
    assert stats.candidates == 0
    assert client.detail_calls == []


def test_format_summary():
    text = format_summary("Crawl Complete", [("Inserted", 3), ("Errors", 0)], note="(dry run)")
    lines = text.splitlines()
    assert lines[1:4] == ["==============", "Crawl Complete", "=============="]
    assert lines[4] == "Inserted:  3"
    assert lines[5] == "Errors:    0"
    assert lines[-1] == "(dry run)"
