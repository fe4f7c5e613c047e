import asyncio

import pytest

from app.services import catalog_service
from app.services.errors import Conflict, LimitExceeded, NotFound, Unauthorized, ValidationFailed


def test_public_reads_need_no_caller(store, restaurant):
    late = store.add_category(restaurant, "Desserts", sort_order=2)
    early = store.add_category(restaurant, "Starters", sort_order=1)
    store.add_item(early, "Soup")

    categories = asyncio.run(catalog_service.get_categories(store, restaurant.id))
    items = asyncio.run(catalog_service.get_by_category(store, early.id))

    assert [c.id for c in categories] == [early.id, late.id]
    assert [i.name for i in items] == ["Soup"]
    assert asyncio.run(catalog_service.get_by_restaurant(store, "unknown")) == []


def test_create_category_trims_and_stamps(store, owner, restaurant):
    payload = {"restaurant_id": restaurant.id, "name": "  Mains  ", "sort_order": 3}

    category = asyncio.run(catalog_service.create_category(store, owner, payload))

    assert category.name == "Mains"
    assert category.sort_order == 3
    assert category.created_at == category.updated_at


def test_create_requires_sort_order(store, owner, restaurant):
    with pytest.raises(ValidationFailed):
        asyncio.run(catalog_service.create_category(store, owner, {"restaurant_id": restaurant.id, "name": "Mains"}))
    with pytest.raises(ValidationFailed):
        asyncio.run(
            catalog_service.create_item(store, owner, {"restaurant_id": restaurant.id, "name": "Fries", "price": 499})
        )
    assert store.inserted_rows == []


def test_item_without_category_is_created_available(store, owner, restaurant):
    item = asyncio.run(
        catalog_service.create_item(
            store,
            owner,
            {"restaurant_id": restaurant.id, "name": "Fries", "price": 499, "sort_order": 2, "is_available": False},
        )
    )

    assert item.category_id is None
    assert item.is_available is True
    assert item.sort_order == 2


def test_non_owner_cannot_create_item_and_nothing_is_written(store, restaurant):
    category = store.add_category(restaurant)
    stranger = store.add_user("stranger@example.com")
    before = len(store.items)

    with pytest.raises(Unauthorized):
        asyncio.run(
            catalog_service.create_item(
                store,
                stranger,
                {"restaurant_id": restaurant.id, "category_id": category.id, "name": "Fries", "price": 499, "sort_order": 0},
            )
        )
    assert len(store.items) == before


def test_invalid_input_is_rejected_before_authorization(store, restaurant):
    stranger = store.add_user("stranger@example.com")

    with pytest.raises(ValidationFailed):
        asyncio.run(
            catalog_service.create_item(
                store, stranger, {"restaurant_id": restaurant.id, "name": "Fries", "price": -1, "sort_order": 0}
            )
        )
    with pytest.raises(ValidationFailed):
        asyncio.run(
            catalog_service.create_item(
                store, stranger, {"restaurant_id": restaurant.id, "name": "Fries", "price": 4.5, "sort_order": 0}
            )
        )


def test_starter_plan_blocks_eleventh_item(store, owner, restaurant):
    category = store.add_category(restaurant)
    for index in range(10):
        store.add_item(category, f"Dish {index}")

    with pytest.raises(LimitExceeded) as excinfo:
        asyncio.run(
            catalog_service.create_item(
                store,
                owner,
                {"restaurant_id": restaurant.id, "category_id": category.id, "name": "Dish 11", "price": 900, "sort_order": 10},
            )
        )
    assert "Upgrade to Growth" in excinfo.value.detail
    assert len(store.items) == 10


def test_item_category_must_belong_to_same_restaurant(store, owner, restaurant):
    other = store.add_restaurant(store.add_user("else@example.com"), "Elsewhere")
    foreign_category = store.add_category(other)

    with pytest.raises(ValidationFailed):
        asyncio.run(
            catalog_service.create_item(
                store,
                owner,
                {"restaurant_id": restaurant.id, "category_id": foreign_category.id, "name": "Fries", "price": 499, "sort_order": 0},
            )
        )


def test_update_item_changes_only_given_fields(store, owner, restaurant):
    item = store.add_item(store.add_category(restaurant), "Burger", price=1599)

    updated = asyncio.run(catalog_service.update_item(store, owner, item.id, {"price": 1799}))

    assert updated.price == 1799
    assert updated.name == "Burger"
    assert updated.updated_at > item.updated_at


def test_toggle_availability_flips_flag(store, owner, restaurant):
    item = store.add_item(store.add_category(restaurant))

    first = asyncio.run(catalog_service.toggle_availability(store, owner, item.id))
    second = asyncio.run(catalog_service.toggle_availability(store, owner, item.id))

    assert first.is_available is False
    assert second.is_available is True


def test_duplicate_creates_hidden_copy_next_to_original(store, owner, restaurant):
    item = store.add_item(store.add_category(restaurant), "Burger", price=1599, sort_order=4, is_spicy=True)

    copy = asyncio.run(catalog_service.duplicate_item(store, owner, item.id))

    assert copy.id != item.id
    assert copy.name == "Burger (Copy)"
    assert copy.price == 1599
    assert copy.sort_order == 5
    assert copy.is_available is False
    assert copy.is_spicy is True
    assert copy.category_id == item.category_id


def test_duplicate_respects_plan_limit(store, owner, restaurant):
    category = store.add_category(restaurant)
    items = [store.add_item(category, f"Dish {index}") for index in range(10)]

    with pytest.raises(LimitExceeded):
        asyncio.run(catalog_service.duplicate_item(store, owner, items[0].id))


def test_category_with_items_cannot_be_removed(store, owner, restaurant):
    category = store.add_category(restaurant)
    item = store.add_item(category)

    with pytest.raises(Conflict):
        asyncio.run(catalog_service.remove_category(store, owner, category.id))
    assert category.id in store.categories

    asyncio.run(catalog_service.remove_item(store, owner, item.id))
    asyncio.run(catalog_service.remove_category(store, owner, category.id))
    assert category.id not in store.categories


def test_remove_missing_item_is_not_found(store, owner):
    with pytest.raises(NotFound):
        asyncio.run(catalog_service.remove_item(store, owner, "missing"))


def test_reorder_sets_only_sort_order(store, owner, restaurant):
    category = store.add_category(restaurant)
    first = store.add_item(category, "A", sort_order=0)
    second = store.add_item(category, "B", sort_order=1)

    updated = asyncio.run(
        catalog_service.reorder_items(
            store, owner, [{"id": first.id, "sort_order": 1}, {"id": second.id, "sort_order": 0}]
        )
    )

    assert updated == 2
    assert store.items[first.id].sort_order == 1
    assert store.items[second.id].sort_order == 0
    assert store.items[first.id].name == "A"
    assert store.items[first.id].price == first.price


def test_reorder_rejects_mixed_restaurants(store, owner, restaurant):
    other = store.add_restaurant(owner, "Second Place")
    mine = store.add_item(store.add_category(restaurant))
    theirs = store.add_item(store.add_category(other))

    with pytest.raises(ValidationFailed):
        asyncio.run(
            catalog_service.reorder_items(
                store, owner, [{"id": mine.id, "sort_order": 1}, {"id": theirs.id, "sort_order": 0}]
            )
        )
    assert store.reorder_calls == []


def test_reorder_by_non_owner_writes_nothing(store, restaurant):
    stranger = store.add_user("stranger@example.com")
    category = store.add_category(restaurant)

    with pytest.raises(Unauthorized):
        asyncio.run(catalog_service.reorder_categories(store, stranger, [{"id": category.id, "sort_order": 3}]))
    assert store.reorder_calls == []
    assert store.categories[category.id].sort_order == 0


def test_reorder_rejects_duplicate_ids_and_empty_is_noop(store, owner, restaurant):
    category = store.add_category(restaurant)

    with pytest.raises(ValidationFailed):
        asyncio.run(
            catalog_service.reorder_categories(
                store, owner, [{"id": category.id, "sort_order": 1}, {"id": category.id, "sort_order": 2}]
            )
        )
    assert asyncio.run(catalog_service.reorder_categories(store, owner, [])) == 0
