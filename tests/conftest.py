import itertools
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure the `eatery` package is importable when running pytest from the repo root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from eatery.core import config  # noqa: E402
from eatery.etl.categories import FOOD_TYPE_NAMES  # noqa: E402


class FakeStore:
    """In-memory stand-in honouring the PostgresStore method contract."""

    def __init__(self):
        self.users = {}
        self.restaurants = {}
        self.restaurant_food_types = {}
        self.food_types = {
            food_type_id: {"id": food_type_id, "name": name, "active": True}
            for food_type_id, name in FOOD_TYPE_NAMES.items()
        }
        self.reviews = {}
        self.eatlist = {}
        self.fail_rating_writes = False
        self.materialize_calls = 0
        self._clock = itertools.count()
        self._epoch = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self):
        return self._epoch + timedelta(seconds=next(self._clock))

    # helpers for tests

    def add_user(self, auth_id="auth-1", active=True):
        user_id = str(uuid.uuid4())
        self.users[auth_id] = {"id": user_id, "active": active}
        return user_id

    def add_restaurant(self, **fields):
        now = self.now()
        row = {
            "id": str(uuid.uuid4()),
            "name": "Soda Tapia",
            "address": None,
            "latitude": None,
            "longitude": None,
            "cover_photo_url": None,
            "website_url": None,
            "foursquare_id": None,
            "rating": 0,
            "active": True,
            "created_at": now,
            "updated_at": now,
        }
        row.update(fields)
        self.restaurants[row["id"]] = row
        return dict(row)

    # users

    def get_user_id(self, auth_id):
        user = self.users.get(auth_id)
        return user["id"] if user and user["active"] else None

    # restaurants

    def get_restaurant(self, restaurant_id):
        row = self.restaurants.get(restaurant_id)
        return dict(row) if row and row["active"] else None

    def get_restaurant_by_foursquare_id(self, foursquare_id, active_only=False):
        for row in self.restaurants.values():
            if row["foursquare_id"] == foursquare_id and (row["active"] or not active_only):
                return dict(row)
        return None

    def materialize_restaurant(self, row, food_type_ids):
        self.materialize_calls += 1
        for existing in self.restaurants.values():
            if existing["foursquare_id"] == row["foursquare_id"]:
                return dict(existing), False
        created = self.add_restaurant(**row)
        self.replace_food_types(created["id"], food_type_ids)
        return created, True

    def create_restaurant(self, row, food_type_ids=()):
        created = self.add_restaurant(**row)
        self.replace_food_types(created["id"], food_type_ids)
        return created

    def update_restaurant(self, restaurant_id, fields):
        row = self.restaurants.get(restaurant_id)
        if not row or not row["active"]:
            return None
        row.update(fields, updated_at=self.now())
        return dict(row)

    def set_cover_photo_if_missing(self, restaurant_id, photo_url):
        row = self.restaurants.get(restaurant_id)
        if not row or not row["active"] or row["cover_photo_url"] is not None:
            return False
        row.update(cover_photo_url=photo_url, updated_at=self.now())
        return True

    def set_restaurant_rating(self, restaurant_id, rating):
        if self.fail_rating_writes:
            raise RuntimeError("connection reset")
        self.restaurants[restaurant_id].update(rating=rating, updated_at=self.now())

    def replace_food_types(self, restaurant_id, food_type_ids):
        self.restaurant_food_types[restaurant_id] = set(food_type_ids)

    def get_restaurant_food_types(self, restaurant_id):
        ids = self.restaurant_food_types.get(restaurant_id, set())
        rows = [{"id": i, "name": self.food_types[i]["name"]} for i in ids if i in self.food_types]
        return sorted(rows, key=lambda row: row["name"])

    def list_restaurants(self, food_type_id=None, min_rating=None, sort="recent", limit=20, offset=0):
        rows = [row for row in self.restaurants.values() if row["active"]]
        if food_type_id:
            rows = [row for row in rows if food_type_id in self.restaurant_food_types.get(row["id"], set())]
        if min_rating is not None:
            rows = [row for row in rows if row["rating"] >= min_rating]
        if sort == "recent":
            rows.sort(key=lambda row: row["created_at"], reverse=True)
        else:
            rows.sort(key=lambda row: (row["rating"], row["created_at"]), reverse=True)
        return [dict(row) for row in rows[offset:offset + limit]], len(rows)

    def top_rated_restaurants(self, limit):
        rows = [row for row in self.restaurants.values() if row["active"] and row["rating"] > 0]
        rows.sort(key=lambda row: row["rating"], reverse=True)
        return [dict(row) for row in rows[:limit]]

    def list_active_restaurant_ids(self):
        return sorted(row["id"] for row in self.restaurants.values() if row["active"])

    # food types

    def list_food_types(self):
        rows = [dict(row) for row in self.food_types.values() if row["active"]]
        return sorted(rows, key=lambda row: row["name"])

    def food_type_name_exists(self, name):
        return any(row["name"].lower() == name.lower() and row["active"] for row in self.food_types.values())

    def insert_food_type(self, row):
        created = {**row, "active": True}
        self.food_types[row["id"]] = created
        return dict(created)

    # reviews

    def active_review_ratings(self, restaurant_id):
        return [
            row["rating"]
            for row in self.reviews.values()
            if row["restaurant_id"] == restaurant_id and row["active"]
        ]

    def insert_review(self, row):
        now = self.now()
        created = {**row, "photo_url": None, "active": True, "created_at": now, "updated_at": now}
        self.reviews[row["id"]] = created
        return dict(created)

    def get_review(self, review_id):
        row = self.reviews.get(review_id)
        return dict(row) if row else None

    def update_review(self, review_id, author_id, fields):
        row = self.reviews.get(review_id)
        if not row or row["author_id"] != author_id or not row["active"]:
            return None
        row.update(fields, updated_at=self.now())
        return dict(row)

    def deactivate_review(self, review_id, author_id):
        return self.update_review(review_id, author_id, {"active": False})

    def list_reviews(self, restaurant_id, limit, offset):
        rows = [
            dict(row)
            for row in self.reviews.values()
            if row["restaurant_id"] == restaurant_id and row["active"]
        ]
        rows.sort(key=lambda row: row["created_at"], reverse=True)
        return rows[offset:offset + limit], len(rows)

    # eatlist

    def get_eatlist_entry(self, user_id, restaurant_id, include_inactive=False):
        row = self.eatlist.get((user_id, restaurant_id))
        if not row or (not row["active"] and not include_inactive):
            return None
        return dict(row)

    def upsert_eatlist_entry(self, user_id, restaurant_id, visited):
        key = (user_id, restaurant_id)
        now = self.now()
        existing = self.eatlist.get(key)
        if existing is None:
            self.eatlist[key] = {
                "user_id": user_id,
                "restaurant_id": restaurant_id,
                "visited": visited,
                "active": True,
                "created_at": now,
                "updated_at": now,
            }
            return dict(self.eatlist[key]), False
        if existing["active"]:
            return None
        existing.update(visited=visited, active=True, created_at=now, updated_at=now)
        return dict(existing), True

    def update_eatlist_flag(self, user_id, restaurant_id, visited):
        row = self.eatlist.get((user_id, restaurant_id))
        if not row or not row["active"]:
            return None
        row.update(visited=visited, updated_at=self.now())
        return dict(row)

    def deactivate_eatlist_entry(self, user_id, restaurant_id):
        row = self.eatlist.get((user_id, restaurant_id))
        if not row or not row["active"]:
            return None
        row.update(active=False, updated_at=self.now())
        return dict(row)

    def list_eatlist(self, user_id, visited=None):
        entries = []
        for (owner, restaurant_id), row in self.eatlist.items():
            if owner != user_id or not row["active"]:
                continue
            if visited is not None and row["visited"] != visited:
                continue
            restaurant = self.restaurants[restaurant_id]
            entries.append({
                **row,
                "restaurant": {
                    "id": restaurant_id,
                    "name": restaurant["name"],
                    "cover_photo_url": restaurant["cover_photo_url"],
                    "rating": restaurant["rating"],
                },
            })
        entries.sort(key=lambda entry: entry["created_at"], reverse=True)
        return entries


def make_place(fsq_id="4b5a3c2df964a520", **overrides):
    place = {
        "fsq_id": fsq_id,
        "name": "La Casona de Laly",
        "location": {"formatted_address": "Calle 5, San José, Costa Rica"},
        "geocodes": {"main": {"latitude": 9.93, "longitude": -84.08}},
        "categories": [{"id": 13031, "name": "Burger Joint"}],
        "website": "https://laly.example.com",
        "photos": [{"prefix": "https://fastly.4sqi.net/img/general/", "suffix": "/123.jpg"}],
    }
    place.update(overrides)
    return place


class FakeCatalog:
    def __init__(self, places=None, error=None):
        self.places = places or {}
        self.error = error
        self.calls = []

    def __call__(self, fsq_id):
        self.calls.append(fsq_id)
        if self.error is not None:
            raise self.error
        return self.places.get(fsq_id) or make_place(fsq_id)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def catalog():
    return FakeCatalog()
