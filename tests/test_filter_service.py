from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from skateguide.schemas.schemas import Coordinates, FilterState, SkateparkResponse
from skateguide.services.filter_service import filter_service

BASE = datetime(2024, 5, 1, 10, 0, 0)
USER = Coordinates(lat=-23.55, lng=-46.63)


def park(id, **overrides):
    values = dict(
        id=id,
        title=f"Park {id}",
        description="",
        tags=[],
        size="Medium",
        levels=["Beginner"],
        is_park=True,
        latitude=-23.55 + id * 0.01,
        longitude=-46.63,
        photo_names=["default.jpg"],
        avg_rating=0,
        favorites_count=0,
        is_approved=True,
        created_by=None,
        created_at=BASE + timedelta(hours=id)
    )
    values.update(overrides)
    return SkateparkResponse(**values)


def ids(results):
    return [p.id for p in results]


def run(parks, user_coords=None, favorite_ids=(), excluded_ids=(), deleting_ids=(), **filters):
    return filter_service.filter_and_sort(
        parks, FilterState(**filters), user_coords=user_coords,
        favorite_ids=favorite_ids, excluded_ids=excluded_ids, deleting_ids=deleting_ids
    )


@pytest.fixture
def parks():
    return [
        park(1, title="Roosevelt Plaza", tags=["Ledge", "Stairs"], size="Large",
             levels=["Intermediate", "Expert"], is_park=False, avg_rating=4.5),
        park(2, title="Ibirapuera Bowl", description="Deep concrete bowl", tags=["Bowl"],
             size="Huge", levels=["Expert"], avg_rating=3.0),
        park(3, title="Mini Ramp Spot", tags=["Mini Ramp"], size="Small",
             levels=["Beginner"], avg_rating=4.5),
        park(4, title="Rail Heaven", tags=["Rail", "Ledge"], size="Tiny",
             levels=["All Levels"], is_park=False, avg_rating=0, is_approved=False),
    ]


def test_type_then_rating_filter_narrows_to_empty():
    small = park(1, size="Small", is_park=True, avg_rating=3)
    large = park(2, size="Large", is_park=False, avg_rating=5)

    assert ids(run([small, large], type_filter="park")) == [1]
    assert run([small, large], type_filter="park", rating_filter_enabled=True, rating_filter=(4, 5)) == []


def test_search_term_matches_title_description_and_tags(parks):
    assert ids(run(parks, search_term="plaza")) == [1]
    assert ids(run(parks, search_term="CONCRETE")) == [2]
    assert ids(run(parks, search_term="ledge")) == [1, 4]
    assert run(parks, search_term="nowhere") == []


def test_type_filter(parks):
    assert ids(run(parks, type_filter="street")) == [1, 4]
    assert ids(run(parks, type_filter="park")) == [2, 3]
    assert ids(run(parks, type_filter="all")) == [1, 2, 3, 4]


def test_size_filter(parks):
    assert ids(run(parks, size_filter=["Huge", "Tiny"])) == [2, 4]


def test_level_filter_intersects_and_all_levels_disables(parks):
    assert ids(run(parks, level_filter=["Expert"])) == [1, 2]
    assert ids(run(parks, level_filter=["Beginner", "Intermediate"])) == [1, 3]
    assert ids(run(parks, level_filter=["All Levels"])) == [1, 2, 3, 4]


def test_tag_filter_needs_one_shared_tag(parks):
    assert ids(run(parks, tag_filter=["Ledge"])) == [1, 4]
    assert ids(run(parks, tag_filter=["Bowl", "Rail"])) == [2, 4]


def test_distance_filter(parks):
    # Parks sit 1.1 km apart going north from the user
    results = run(parks, user_coords=USER, distance_filter_enabled=True, distance_filter=2.5)
    assert ids(results) == [1, 2]
    assert all(p.distance_km <= 2.5 for p in results)


def test_distance_filter_without_coords_is_noop(parks):
    enabled = run(parks, distance_filter_enabled=True, distance_filter=0.1)
    disabled = run(parks, distance_filter_enabled=False)
    assert ids(enabled) == ids(disabled)
    assert all(p.distance_km is None for p in enabled)


def test_rating_range_is_inclusive(parks):
    assert ids(run(parks, rating_filter_enabled=True, rating_filter=(3, 4.5))) == [1, 2, 3]
    assert ids(run(parks, rating_filter_enabled=True, rating_filter=(0, 0))) == [4]
    assert ids(run(parks, rating_filter_enabled=False, rating_filter=(5, 5))) == [1, 2, 3, 4]


def test_favorites_only(parks):
    assert ids(run(parks, favorite_ids=[3, 1], show_only_favorites=True)) == [1, 3]
    assert run(parks, show_only_favorites=True) == []


def test_approved_only(parks):
    assert ids(run(parks, show_only_approved=True)) == [1, 2, 3]


def test_excluded_ids_and_deleting_flag(parks):
    results = run(parks, excluded_ids=[2], deleting_ids=[3])
    assert ids(results) == [1, 3, 4]
    assert [p.is_deleting for p in results] == [False, True, False]
    assert results[0].coordinates == Coordinates(lat=parks[0].latitude, lng=parks[0].longitude)


@pytest.mark.parametrize("extra", [
    {"search_term": "a"},
    {"type_filter": "park"},
    {"size_filter": ["Large"]},
    {"level_filter": ["Expert"]},
    {"tag_filter": ["Ledge"]},
    {"distance_filter_enabled": True, "distance_filter": 3},
    {"rating_filter_enabled": True, "rating_filter": (4, 5)},
    {"show_only_favorites": True},
    {"show_only_approved": True},
])
def test_adding_a_filter_never_grows_results(parks, extra):
    base = set(ids(run(parks, user_coords=USER, favorite_ids=[1, 2])))
    narrowed = set(ids(run(parks, user_coords=USER, favorite_ids=[1, 2], **extra)))
    assert narrowed <= base


def test_sort_by_rating_is_stable(parks):
    first = run(parks, sort_by="rating")
    second = run(parks, sort_by="rating")
    # 1 and 3 tie on 4.5 and keep their input order
    assert ids(first) == [1, 3, 2, 4]
    assert [p.model_dump_json() for p in first] == [p.model_dump_json() for p in second]


def test_sort_by_distance(parks):
    far_first = list(reversed(parks))
    assert ids(run(far_first, user_coords=USER, sort_by="distance")) == [1, 2, 3, 4]


def test_sort_by_distance_without_coords_falls_back_to_rating(parks):
    assert ids(run(parks, sort_by="distance")) == ids(run(parks, sort_by="rating"))


def test_sort_by_recent_uses_creation_time():
    older = park(1, created_at=BASE + timedelta(days=2))
    newer = park(2, created_at=BASE + timedelta(days=5))
    undated = park(3, created_at=None)
    assert ids(run([older, undated, newer], sort_by="recent")) == [2, 1, 3]


def test_default_sort_keeps_input_order(parks):
    shuffled = [parks[2], parks[0], parks[3], parks[1]]
    assert ids(run(shuffled)) == [3, 1, 4, 2]


def test_filter_state_rejects_unknown_fields_and_bad_ranges():
    with pytest.raises(PydanticValidationError):
        FilterState(color="red")
    with pytest.raises(PydanticValidationError):
        FilterState(rating_filter=(4, 2))
    with pytest.raises(PydanticValidationError):
        FilterState(rating_filter=(0, 6))
    with pytest.raises(PydanticValidationError):
        FilterState(sort_by="alphabetical")
