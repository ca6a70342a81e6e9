import uuid

import pytest

from eatery.core.errors import NotFoundError, UpstreamError, ValidationError
from eatery.etl import categories
from eatery.services import restaurants

from conftest import FakeCatalog, make_place


def test_is_local_id():
    assert restaurants.is_local_id(str(uuid.uuid4()))
    assert restaurants.is_local_id(str(uuid.uuid4()).upper())
    assert not restaurants.is_local_id("4b5a3c2df964a520")
    assert not restaurants.is_local_id("")


def test_resolve_local_id(store, catalog):
    restaurant = store.add_restaurant(name="Local")
    assert restaurants.resolve_restaurant_id(store, restaurant["id"], catalog) == restaurant["id"]
    assert catalog.calls == []


def test_resolve_unknown_local_id_is_not_found(store, catalog):
    with pytest.raises(NotFoundError):
        restaurants.resolve_restaurant_id(store, str(uuid.uuid4()), catalog)


def test_resolve_inactive_local_id_is_not_found(store, catalog):
    restaurant = store.add_restaurant(active=False)
    with pytest.raises(NotFoundError):
        restaurants.resolve_restaurant_id(store, restaurant["id"], catalog)


@pytest.mark.parametrize("ref", ["", "   ", None])
def test_resolve_empty_ref(store, catalog, ref):
    with pytest.raises(ValidationError):
        restaurants.resolve_restaurant_id(store, ref, catalog)


def test_resolve_materializes_catalog_place(store, catalog):
    restaurant_id = restaurants.resolve_restaurant_id(store, "fsq-burger", catalog)

    row = store.restaurants[restaurant_id]
    assert row["foursquare_id"] == "fsq-burger"
    assert row["name"] == "La Casona de Laly"
    assert row["rating"] == 0
    assert row["active"] is True
    assert row["cover_photo_url"].endswith("/original/123.jpg")
    assert store.restaurant_food_types[restaurant_id] == {categories.BURGERS}
    assert catalog.calls == ["fsq-burger"]


def test_resolve_is_idempotent(store, catalog):
    first = restaurants.resolve_restaurant_id(store, "fsq-1", catalog)
    second = restaurants.resolve_restaurant_id(store, "fsq-1", catalog)

    assert first == second
    assert len(store.restaurants) == 1
    assert catalog.calls == ["fsq-1"]


def test_resolve_existing_external_id_ignores_active_flag(store, catalog):
    restaurant = store.add_restaurant(foursquare_id="fsq-old", active=False)
    assert restaurants.resolve_restaurant_id(store, "fsq-old", catalog) == restaurant["id"]
    assert catalog.calls == []


def test_concurrent_first_references_share_one_row(store, catalog, monkeypatch):
    # Both requests miss the existing-row lookup before either has inserted.
    monkeypatch.setattr(store, "get_restaurant_by_foursquare_id", lambda *args, **kwargs: None)

    first = restaurants.resolve_restaurant_id(store, "fsq-race", catalog)
    second = restaurants.resolve_restaurant_id(store, "fsq-race", catalog)

    assert first == second
    assert store.materialize_calls == 2
    assert len(store.restaurants) == 1


def test_resolve_upstream_failure_propagates(store):
    failing = FakeCatalog(error=UpstreamError("Foursquare API error: 500"))
    with pytest.raises(UpstreamError):
        restaurants.resolve_restaurant_id(store, "fsq-down", failing)
    assert store.restaurants == {}


def test_get_or_create_reports_creation(store):
    catalog = FakeCatalog(places={"fsq-2": make_place("fsq-2", categories=[{"id": 1, "name": "Korean BBQ House"}])})

    restaurant, created = restaurants.get_or_create_restaurant(store, "fsq-2", catalog)
    again, created_again = restaurants.get_or_create_restaurant(store, "fsq-2", catalog)

    assert created is True and created_again is False
    assert again["id"] == restaurant["id"]
    assert store.restaurant_food_types[restaurant["id"]] == {categories.BARBECUE}


def test_get_or_create_rejects_nameless_place(store):
    catalog = FakeCatalog(places={"fsq-x": make_place("fsq-x", name="")})
    with pytest.raises(ValidationError):
        restaurants.get_or_create_restaurant(store, "fsq-x", catalog)


def test_get_restaurant_includes_food_types(store, catalog):
    restaurant_id = restaurants.resolve_restaurant_id(store, "fsq-1", catalog)
    restaurant = restaurants.get_restaurant(store, restaurant_id)
    assert restaurant["food_types"] == [{"id": categories.BURGERS, "name": "Burgers"}]

    with pytest.raises(NotFoundError):
        restaurants.get_restaurant(store, "not-a-uuid")


def test_get_restaurant_by_foursquare_id_active_only(store):
    store.add_restaurant(foursquare_id="fsq-gone", active=False)
    with pytest.raises(NotFoundError):
        restaurants.get_restaurant_by_foursquare_id(store, "fsq-gone")


def test_list_restaurants_filters_and_sorts(store):
    low = store.add_restaurant(name="Low", rating=2)
    high = store.add_restaurant(name="High", rating=4.5)
    store.replace_food_types(high["id"], [categories.PIZZA])

    rows, total = restaurants.list_restaurants(store, sort="rating")
    assert [row["id"] for row in rows] == [high["id"], low["id"]]
    assert total == 2

    rows, total = restaurants.list_restaurants(store, food_type_id=categories.PIZZA)
    assert [row["id"] for row in rows] == [high["id"]]

    rows, total = restaurants.list_restaurants(store, min_rating=3, page=1, limit=1)
    assert total == 1


@pytest.mark.parametrize(
    "kwargs",
    [{"sort": "popularity"}, {"page": 0}, {"limit": 0}, {"min_rating": 6}, {"food_type_id": "pizza"}],
)
def test_list_restaurants_validation(store, kwargs):
    with pytest.raises(ValidationError):
        restaurants.list_restaurants(store, **kwargs)


def test_top_rated_excludes_unrated(store):
    store.add_restaurant(name="Unrated", rating=0)
    rated = store.add_restaurant(name="Rated", rating=3.5)
    assert [row["id"] for row in restaurants.top_rated_restaurants(store)] == [rated["id"]]


def test_create_and_update_restaurant(store):
    restaurant = restaurants.create_restaurant(store, " Soda Tala ", food_type_ids=[categories.COSTA_RICAN])
    assert restaurant["name"] == "Soda Tala"
    assert restaurant["foursquare_id"] is None
    assert store.restaurant_food_types[restaurant["id"]] == {categories.COSTA_RICAN}

    updated = restaurants.update_restaurant(store, restaurant["id"], address="Barrio Escalante")
    assert updated["address"] == "Barrio Escalante"


def test_update_restaurant_rejects_rating_and_empty(store):
    restaurant = store.add_restaurant()
    with pytest.raises(ValidationError):
        restaurants.update_restaurant(store, restaurant["id"], rating=5)
    with pytest.raises(ValidationError):
        restaurants.update_restaurant(store, restaurant["id"])
    with pytest.raises(ValidationError):
        restaurants.update_restaurant(store, restaurant["id"], latitude=120)
    with pytest.raises(NotFoundError):
        restaurants.update_restaurant(store, str(uuid.uuid4()), name="Ghost")
