import logging

import pytest

from skateguide.db.models import Favorite
from skateguide.exceptions import NotFoundError
from skateguide.services.favorites_service import favorites_service


def test_toggle_adds_then_removes(db, make_user, make_park):
    user = make_user()
    park = make_park()

    result = favorites_service.toggle_favorite(db, user.id, park.id)
    assert result == {"action": "added", "favorites_count": 1}
    assert favorites_service.get_favorite_ids(db, user.id) == [park.id]

    result = favorites_service.toggle_favorite(db, user.id, park.id)
    assert result == {"action": "removed", "favorites_count": 0}
    assert favorites_service.get_favorite_ids(db, user.id) == []


def test_toggle_pair_restores_count(db, make_user, make_park):
    park = make_park()
    fans = [make_user() for _ in range(3)]
    for fan in fans:
        favorites_service.toggle_favorite(db, fan.id, park.id)

    user = make_user()
    favorites_service.toggle_favorite(db, user.id, park.id)
    favorites_service.toggle_favorite(db, user.id, park.id)

    assert favorites_service.get_counts(db, [park.id]) == {park.id: 3}
    assert park.id not in favorites_service.get_favorite_ids(db, user.id)


def test_favorites_keep_insertion_order(db, make_user, make_park):
    user = make_user()
    first, second, third = make_park(), make_park(), make_park()
    for park in (third, first, second):
        favorites_service.toggle_favorite(db, user.id, park.id)

    assert favorites_service.get_favorite_ids(db, user.id) == [third.id, first.id, second.id]
    assert [p.id for p in favorites_service.get_favorites(db, user.id)] == [third.id, first.id, second.id]


def test_count_never_goes_negative(db, make_user, make_park, caplog):
    user = make_user()
    park = make_park()
    favorites_service.toggle_favorite(db, user.id, park.id)

    # Counter drifted below the real membership count
    park.favorites_count = 0
    db.commit()

    with caplog.at_level(logging.WARNING, logger="skateguide.services.favorites_service"):
        result = favorites_service.toggle_favorite(db, user.id, park.id)

    assert result == {"action": "removed", "favorites_count": 0}
    assert "would go negative" in caplog.text


def test_toggle_unknown_ids(db, make_user, make_park):
    user = make_user()
    park = make_park()

    with pytest.raises(NotFoundError):
        favorites_service.toggle_favorite(db, user.id, 4242)
    with pytest.raises(NotFoundError):
        favorites_service.toggle_favorite(db, 4242, park.id)
    assert db.query(Favorite).count() == 0


def test_get_favorites_unknown_user(db):
    with pytest.raises(NotFoundError):
        favorites_service.get_favorites(db, 4242)


def test_deleting_park_removes_favorite_rows(db, make_user, make_park):
    user = make_user()
    kept, deleted = make_park(), make_park()
    favorites_service.toggle_favorite(db, user.id, kept.id)
    favorites_service.toggle_favorite(db, user.id, deleted.id)

    db.delete(deleted)
    db.commit()

    assert favorites_service.get_favorite_ids(db, user.id) == [kept.id]
    assert [p.id for p in favorites_service.get_favorites(db, user.id)] == [kept.id]


def test_reconcile_counts(db, make_user, make_park):
    park, other = make_park(), make_park()
    for _ in range(2):
        favorites_service.toggle_favorite(db, make_user().id, park.id)

    park.favorites_count = 7
    other.favorites_count = 1
    db.commit()

    assert favorites_service.reconcile_counts(db) == 2
    assert favorites_service.get_counts(db, [park.id, other.id]) == {park.id: 2, other.id: 0}
    assert favorites_service.reconcile_counts(db) == 0


def test_get_counts_empty():
    assert favorites_service.get_counts(None, []) == {}
