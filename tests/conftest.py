from __future__ import annotations

import json
import sqlite3
from typing import Dict, List, Optional

import pytest
from psycopg2.extras import Json

from recipe_ingest.fetcher import FetchError, RateLimiter
from recipe_ingest.store import Database

SCHEMA = """
CREATE TABLE recipe (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    cooking_time_minutes INTEGER,
    macronutrients TEXT,
    tags TEXT,
    image_url TEXT,
    source_url TEXT UNIQUE,
    servings INTEGER,
    recipe_category TEXT,
    instructions TEXT,
    created_by TEXT,
    created_at TEXT,
    updated_at TEXT
);
CREATE TABLE ingredient (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    category TEXT,
    unit TEXT,
    calories REAL,
    protein REAL,
    carbs REAL,
    fat REAL,
    fiber REAL
);
CREATE TABLE recipe_ingredient (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    recipe_id INTEGER NOT NULL REFERENCES recipe(id) ON DELETE CASCADE,
    ingredient_id INTEGER REFERENCES ingredient(id),
    name TEXT,
    raw_text TEXT NOT NULL,
    quantity REAL,
    unit TEXT
);
"""


# ================== psycopg2-shaped pool over sqlite ==================
def _adapt(value):
    if isinstance(value, Json):
        return json.dumps(value.adapted)
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return value


class SqliteCursor:
    def __init__(self, conn: sqlite3.Connection, pool: "SqlitePool"):
        self._cur = conn.cursor()
        self._pool = pool
        self._rows: List[tuple] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self._cur.close()
        return False

    def execute(self, sql: str, params=()):
        if self._pool.fail_on and self._pool.fail_on in sql:
            raise sqlite3.OperationalError(f"forced failure on: {self._pool.fail_on}")
        self._cur.execute(sql.replace("%s", "?"), [_adapt(p) for p in params])
        # drain RETURNING / SELECT rows so the statement is finished before commit
        self._rows = list(self._cur.fetchall())

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    @property
    def rowcount(self):
        return self._cur.rowcount


class SqliteConnection:
    def __init__(self, conn: sqlite3.Connection, pool: "SqlitePool"):
        self._conn = conn
        self._pool = pool

    def cursor(self):
        return SqliteCursor(self._conn, self._pool)

    def commit(self):
        self._conn.commit()

    def rollback(self):
        self._conn.rollback()


class SqlitePool:
    """getconn/putconn/closeall over one in-memory sqlite database."""

    def __init__(self):
        self.raw = sqlite3.connect(":memory:")
        self.raw.executescript(SCHEMA)
        self.fail_on: Optional[str] = None
        self.borrowed = 0

    def getconn(self):
        self.borrowed += 1
        return SqliteConnection(self.raw, self)

    def putconn(self, conn):
        self.borrowed -= 1

    def closeall(self):
        self.raw.close()


@pytest.fixture
def pool() -> SqlitePool:
    p = SqlitePool()
    yield p
    try:
        p.raw.close()
    except sqlite3.ProgrammingError:
        pass


@pytest.fixture
def db(pool: SqlitePool) -> Database:
    return Database(pool)


# ================== HTTP fakes ==================
class FakeFetcher:
    """Serves canned bodies by URL; unknown URLs fail like a 404."""

    def __init__(self, pages: Optional[Dict[str, object]] = None, failing: Optional[Dict[str, Exception]] = None):
        self.pages = dict(pages or {})
        self.failing = dict(failing or {})
        self.requested: List[str] = []

    def _lookup(self, url: str):
        self.requested.append(url)
        if url in self.failing:
            raise self.failing[url]
        if url not in self.pages:
            raise FetchError(url, 404)
        return self.pages[url]

    def get_text(self, url: str) -> str:
        return self._lookup(url)

    def get_json(self, url: str):
        return self._lookup(url)


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(min_delay=1.5, clock=clock, sleep=clock.sleep)


def sitemap_index(*locs: str) -> str:
    items = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return ('<?xml version="1.0" encoding="UTF-8"?>'
            '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            f"{items}</sitemapindex>")


def urlset(*locs: str) -> str:
    items = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return ('<?xml version="1.0" encoding="UTF-8"?>'
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            f"{items}</urlset>")


def html_with_links(*hrefs: str) -> str:
    anchors = "".join(f'<a href="{h}">x</a>' for h in hrefs)
    return f"<html><body>{anchors}</body></html>"
