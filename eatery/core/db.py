"""Database helpers and the PostgreSQL-backed store."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple

from psycopg2 import extras, pool, sql

from eatery.core.config import ConfigError, get_settings
from eatery.etl.categories import FOOD_TYPE_NAMES

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None


def init_pool(minconn: int = 1, maxconn: Optional[int] = None) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise ConfigError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn or settings.db_pool_max,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id UUID PRIMARY KEY,
    auth_id TEXT NOT NULL UNIQUE,
    active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS restaurants (
    id UUID PRIMARY KEY,
    name TEXT NOT NULL,
    address TEXT,
    latitude DOUBLE PRECISION,
    longitude DOUBLE PRECISION,
    cover_photo_url TEXT,
    website_url TEXT,
    foursquare_id TEXT UNIQUE,
    rating NUMERIC(2, 1) NOT NULL DEFAULT 0,
    active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS food_types (
    id UUID PRIMARY KEY,
    name TEXT NOT NULL,
    active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS restaurant_food_types (
    restaurant_id UUID NOT NULL REFERENCES restaurants (id),
    food_type_id UUID NOT NULL REFERENCES food_types (id),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (restaurant_id, food_type_id)
);

CREATE TABLE IF NOT EXISTS reviews (
    id UUID PRIMARY KEY,
    restaurant_id UUID NOT NULL REFERENCES restaurants (id),
    author_id UUID NOT NULL REFERENCES users (id),
    rating SMALLINT NOT NULL CHECK (rating BETWEEN 1 AND 5),
    comment TEXT CHECK (char_length(comment) <= 2000),
    photo_url TEXT,
    active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS reviews_restaurant_active_idx ON reviews (restaurant_id) WHERE active;

CREATE TABLE IF NOT EXISTS eatlist_entries (
    user_id UUID NOT NULL REFERENCES users (id),
    restaurant_id UUID NOT NULL REFERENCES restaurants (id),
    visited BOOLEAN NOT NULL DEFAULT FALSE,
    active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (user_id, restaurant_id)
);
"""

_SEED_FOOD_TYPE = """
INSERT INTO food_types (id, name) VALUES (%s, %s)
ON CONFLICT (id) DO NOTHING;
"""


def apply_schema() -> None:
    """Create missing tables and seed the fixed food-type taxonomy."""
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
            cur.executemany(_SEED_FOOD_TYPE, list(FOOD_TYPE_NAMES.items()))
        conn.commit()
        logger.info("Schema applied, %d food types seeded", len(FOOD_TYPE_NAMES))


_INSERT_RESTAURANT = """
INSERT INTO restaurants (
    id,
    name,
    address,
    latitude,
    longitude,
    cover_photo_url,
    website_url,
    foursquare_id,
    rating,
    active,
    created_at,
    updated_at
) VALUES (
    %(id)s,
    %(name)s,
    %(address)s,
    %(latitude)s,
    %(longitude)s,
    %(cover_photo_url)s,
    %(website_url)s,
    %(foursquare_id)s,
    0,
    TRUE,
    NOW(),
    NOW()
)
"""

_INSERT_RESTAURANT_FROM_CATALOG = _INSERT_RESTAURANT + """
ON CONFLICT (foursquare_id) DO NOTHING
RETURNING *;
"""

_INSERT_RESTAURANT_DIRECT = _INSERT_RESTAURANT + """
RETURNING *;
"""

_UPSERT_EATLIST_ENTRY = """
INSERT INTO eatlist_entries (
    user_id,
    restaurant_id,
    visited,
    active,
    created_at,
    updated_at
) VALUES (
    %(user_id)s,
    %(restaurant_id)s,
    %(visited)s,
    TRUE,
    NOW(),
    NOW()
)
ON CONFLICT (user_id, restaurant_id) DO UPDATE SET
    visited = EXCLUDED.visited,
    active = TRUE,
    created_at = NOW(),
    updated_at = NOW()
WHERE eatlist_entries.active = FALSE
RETURNING *, (xmax::text <> '0') AS reactivated;
"""

_LIST_EATLIST = """
SELECT
    e.user_id,
    e.restaurant_id,
    e.visited,
    e.active,
    e.created_at,
    e.updated_at,
    r.name AS restaurant_name,
    r.cover_photo_url AS restaurant_cover_photo_url,
    r.rating AS restaurant_rating
FROM eatlist_entries e
JOIN restaurants r ON r.id = e.restaurant_id
WHERE e.user_id = %(user_id)s
  AND e.active
  AND (%(visited)s::boolean IS NULL OR e.visited = %(visited)s::boolean)
ORDER BY e.created_at DESC;
"""

RESTAURANT_UPDATABLE_FIELDS = (
    "name",
    "address",
    "latitude",
    "longitude",
    "cover_photo_url",
    "website_url",
)
REVIEW_UPDATABLE_FIELDS = ("rating", "comment", "photo_url")

_RESTAURANT_ORDER = {
    "recent": "created_at DESC",
    "rating": "rating DESC, created_at DESC",
    # No geo index yet; distance ordering falls back to rating.
    "distance": "rating DESC, created_at DESC",
}


def _set_clause(fields: Dict[str, Any], allowed: Iterable[str]) -> sql.Composed:
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValueError(f"unsupported columns: {', '.join(sorted(unknown))}")
    assignments = [
        sql.SQL("{} = {}").format(sql.Identifier(name), sql.Placeholder(name))
        for name in fields
    ]
    assignments.append(sql.SQL("updated_at = NOW()"))
    return sql.SQL(", ").join(assignments)


def _replace_food_types(cur, restaurant_id: str, food_type_ids: Iterable[str]) -> None:
    cur.execute("DELETE FROM restaurant_food_types WHERE restaurant_id = %s", (restaurant_id,))
    links = [(restaurant_id, food_type_id) for food_type_id in sorted(set(food_type_ids))]
    if links:
        cur.executemany(
            "INSERT INTO restaurant_food_types (restaurant_id, food_type_id) VALUES (%s, %s)",
            links,
        )


class PostgresStore:
    """Row-level access to the restaurant, review and eatlist tables.

    Every public method runs in its own transaction on a pooled connection and
    returns plain dictionaries. Uniqueness races are settled by the database
    (``ON CONFLICT``), never by a read followed by a write.
    """

    def __init__(self, connection_factory=get_connection):
        self._connection_factory = connection_factory

    @contextmanager
    def _cursor(self):
        with self._connection_factory() as conn:
            try:
                with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                    yield cur
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def _fetch_one(self, query, params) -> Optional[Dict[str, Any]]:
        with self._cursor() as cur:
            cur.execute(query, params)
            row = cur.fetchone()
        return dict(row) if row else None

    def _fetch_all(self, query, params) -> List[Dict[str, Any]]:
        with self._cursor() as cur:
            cur.execute(query, params)
            rows = cur.fetchall()
        return [dict(row) for row in rows]

    # ---------- Users ----------

    def get_user_id(self, auth_id: str) -> Optional[str]:
        row = self._fetch_one("SELECT id FROM users WHERE auth_id = %s AND active", (auth_id,))
        return str(row["id"]) if row else None

    # ---------- Restaurants ----------

    def get_restaurant(self, restaurant_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM restaurants WHERE id = %s AND active", (restaurant_id,))

    def get_restaurant_by_foursquare_id(
        self, foursquare_id: str, active_only: bool = False
    ) -> Optional[Dict[str, Any]]:
        query = "SELECT * FROM restaurants WHERE foursquare_id = %s"
        if active_only:
            query += " AND active"
        return self._fetch_one(query, (foursquare_id,))

    def materialize_restaurant(
        self, row: Dict[str, Any], food_type_ids: Iterable[str]
    ) -> Tuple[Dict[str, Any], bool]:
        """Insert a catalog place or return the row another request already created."""
        if not row.get("foursquare_id"):
            raise ValueError("foursquare_id is required to materialize a catalog place")

        with self._cursor() as cur:
            cur.execute(_INSERT_RESTAURANT_FROM_CATALOG, row)
            created = cur.fetchone()
            if created is None:
                cur.execute("SELECT * FROM restaurants WHERE foursquare_id = %s", (row["foursquare_id"],))
                existing = cur.fetchone()
                if existing is None:
                    raise RuntimeError(f"restaurant {row['foursquare_id']} vanished after conflict")
                logger.debug("Restaurant %s already materialized", row["foursquare_id"])
                return dict(existing), False
            _replace_food_types(cur, created["id"], food_type_ids)
        logger.info("Materialized restaurant %s from foursquare_id=%s", created["id"], row["foursquare_id"])
        return dict(created), True

    def create_restaurant(self, row: Dict[str, Any], food_type_ids: Iterable[str] = ()) -> Dict[str, Any]:
        with self._cursor() as cur:
            cur.execute(_INSERT_RESTAURANT_DIRECT, row)
            created = cur.fetchone()
            _replace_food_types(cur, created["id"], food_type_ids)
        return dict(created)

    def update_restaurant(self, restaurant_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        query = sql.SQL("UPDATE restaurants SET {} WHERE id = {} AND active RETURNING *").format(
            _set_clause(fields, RESTAURANT_UPDATABLE_FIELDS),
            sql.Placeholder("_id"),
        )
        return self._fetch_one(query, {**fields, "_id": restaurant_id})

    def set_cover_photo_if_missing(self, restaurant_id: str, photo_url: str) -> bool:
        row = self._fetch_one(
            "UPDATE restaurants SET cover_photo_url = %s, updated_at = NOW() "
            "WHERE id = %s AND active AND cover_photo_url IS NULL RETURNING id",
            (photo_url, restaurant_id),
        )
        return row is not None

    def set_restaurant_rating(self, restaurant_id: str, rating) -> None:
        with self._cursor() as cur:
            cur.execute(
                "UPDATE restaurants SET rating = %s, updated_at = NOW() WHERE id = %s",
                (rating, restaurant_id),
            )

    def replace_food_types(self, restaurant_id: str, food_type_ids: Iterable[str]) -> None:
        with self._cursor() as cur:
            _replace_food_types(cur, restaurant_id, food_type_ids)

    def get_restaurant_food_types(self, restaurant_id: str) -> List[Dict[str, Any]]:
        return self._fetch_all(
            "SELECT ft.id, ft.name FROM restaurant_food_types rft "
            "JOIN food_types ft ON ft.id = rft.food_type_id "
            "WHERE rft.restaurant_id = %s ORDER BY ft.name",
            (restaurant_id,),
        )

    def list_restaurants(
        self,
        food_type_id: Optional[str] = None,
        min_rating: Optional[float] = None,
        sort: str = "recent",
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        where = ["active"]
        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if food_type_id:
            where.append(
                "id IN (SELECT restaurant_id FROM restaurant_food_types WHERE food_type_id = %(food_type_id)s)"
            )
            params["food_type_id"] = food_type_id
        if min_rating is not None:
            where.append("rating >= %(min_rating)s")
            params["min_rating"] = min_rating
        where_sql = " AND ".join(where)
        order_sql = _RESTAURANT_ORDER.get(sort, _RESTAURANT_ORDER["recent"])

        with self._cursor() as cur:
            cur.execute(f"SELECT COUNT(*) AS total FROM restaurants WHERE {where_sql}", params)
            total = cur.fetchone()["total"]
            cur.execute(
                f"SELECT * FROM restaurants WHERE {where_sql} ORDER BY {order_sql} "
                "LIMIT %(limit)s OFFSET %(offset)s",
                params,
            )
            rows = [dict(row) for row in cur.fetchall()]
        return rows, total

    def top_rated_restaurants(self, limit: int) -> List[Dict[str, Any]]:
        return self._fetch_all(
            "SELECT * FROM restaurants WHERE active AND rating > 0 ORDER BY rating DESC LIMIT %s",
            (limit,),
        )

    def list_active_restaurant_ids(self) -> List[str]:
        return [str(row["id"]) for row in self._fetch_all("SELECT id FROM restaurants WHERE active ORDER BY id", ())]

    # ---------- Food types ----------

    def list_food_types(self) -> List[Dict[str, Any]]:
        return self._fetch_all("SELECT * FROM food_types WHERE active ORDER BY name ASC", ())

    def food_type_name_exists(self, name: str) -> bool:
        row = self._fetch_one("SELECT id FROM food_types WHERE lower(name) = lower(%s) AND active LIMIT 1", (name,))
        return row is not None

    def insert_food_type(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._fetch_one(
            "INSERT INTO food_types (id, name, active, created_at, updated_at) "
            "VALUES (%(id)s, %(name)s, TRUE, NOW(), NOW()) RETURNING *",
            row,
        )

    # ---------- Reviews ----------

    def active_review_ratings(self, restaurant_id: str) -> List[int]:
        rows = self._fetch_all("SELECT rating FROM reviews WHERE restaurant_id = %s AND active", (restaurant_id,))
        return [row["rating"] for row in rows]

    def insert_review(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._fetch_one(
            "INSERT INTO reviews (id, restaurant_id, author_id, rating, comment, photo_url, active, created_at, updated_at) "
            "VALUES (%(id)s, %(restaurant_id)s, %(author_id)s, %(rating)s, %(comment)s, NULL, TRUE, NOW(), NOW()) "
            "RETURNING *",
            row,
        )

    def get_review(self, review_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM reviews WHERE id = %s", (review_id,))

    def update_review(self, review_id: str, author_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        query = sql.SQL(
            "UPDATE reviews SET {} WHERE id = {} AND author_id = {} AND active RETURNING *"
        ).format(
            _set_clause(fields, REVIEW_UPDATABLE_FIELDS),
            sql.Placeholder("_id"),
            sql.Placeholder("_author_id"),
        )
        return self._fetch_one(query, {**fields, "_id": review_id, "_author_id": author_id})

    def deactivate_review(self, review_id: str, author_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one(
            "UPDATE reviews SET active = FALSE, updated_at = NOW() "
            "WHERE id = %s AND author_id = %s AND active RETURNING *",
            (review_id, author_id),
        )

    def list_reviews(self, restaurant_id: str, limit: int, offset: int) -> Tuple[List[Dict[str, Any]], int]:
        with self._cursor() as cur:
            cur.execute(
                "SELECT COUNT(*) AS total FROM reviews WHERE restaurant_id = %s AND active",
                (restaurant_id,),
            )
            total = cur.fetchone()["total"]
            cur.execute(
                "SELECT * FROM reviews WHERE restaurant_id = %s AND active "
                "ORDER BY created_at DESC LIMIT %s OFFSET %s",
                (restaurant_id, limit, offset),
            )
            rows = [dict(row) for row in cur.fetchall()]
        return rows, total

    # ---------- Eatlist ----------

    def get_eatlist_entry(
        self, user_id: str, restaurant_id: str, include_inactive: bool = False
    ) -> Optional[Dict[str, Any]]:
        query = "SELECT * FROM eatlist_entries WHERE user_id = %s AND restaurant_id = %s"
        if not include_inactive:
            query += " AND active"
        return self._fetch_one(query, (user_id, restaurant_id))

    def upsert_eatlist_entry(
        self, user_id: str, restaurant_id: str, visited: bool
    ) -> Optional[Tuple[Dict[str, Any], bool]]:
        """Create or reactivate the pair's entry; None when it is already active."""
        row = self._fetch_one(
            _UPSERT_EATLIST_ENTRY,
            {"user_id": user_id, "restaurant_id": restaurant_id, "visited": visited},
        )
        if row is None:
            return None
        reactivated = bool(row.pop("reactivated"))
        return row, reactivated

    def update_eatlist_flag(self, user_id: str, restaurant_id: str, visited: bool) -> Optional[Dict[str, Any]]:
        return self._fetch_one(
            "UPDATE eatlist_entries SET visited = %s, updated_at = NOW() "
            "WHERE user_id = %s AND restaurant_id = %s AND active RETURNING *",
            (visited, user_id, restaurant_id),
        )

    def deactivate_eatlist_entry(self, user_id: str, restaurant_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one(
            "UPDATE eatlist_entries SET active = FALSE, updated_at = NOW() "
            "WHERE user_id = %s AND restaurant_id = %s AND active RETURNING *",
            (user_id, restaurant_id),
        )

    def list_eatlist(self, user_id: str, visited: Optional[bool] = None) -> List[Dict[str, Any]]:
        rows = self._fetch_all(_LIST_EATLIST, {"user_id": user_id, "visited": visited})
        entries = []
        for row in rows:
            entries.append({
                "user_id": row["user_id"],
                "restaurant_id": row["restaurant_id"],
                "visited": row["visited"],
                "active": row["active"],
                "created_at": row["created_at"],
                "updated_at": row["updated_at"],
                "restaurant": {
                    "id": row["restaurant_id"],
                    "name": row["restaurant_name"],
                    "cover_photo_url": row["restaurant_cover_photo_url"],
                    "rating": row["restaurant_rating"],
                },
            })
        return entries
