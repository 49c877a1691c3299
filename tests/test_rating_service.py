import os
import threading

import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import sessionmaker

from skateguide.db.database import Base, build_engine, init_db
from skateguide.db.models import Skatepark, SkateparkRating, User
from skateguide.exceptions import NotFoundError, ValidationError
from skateguide.services.rating_service import rating_service

# Row locking only matters on a server database; SQLite serialises writers
POSTGRES_URL = os.environ.get("SKATEGUIDE_TEST_POSTGRES_URL")


def ratings_for(db, park_id):
    return db.query(SkateparkRating).filter(SkateparkRating.skatepark_id == park_id).all()


def test_rerating_replaces_previous_value(db, make_user, make_park):
    user = make_user()
    park = make_park()

    park = rating_service.rate(db, park.id, user.id, 4)
    assert park.avg_rating == 4.0

    park = rating_service.rate(db, park.id, user.id, 2)
    assert park.avg_rating == 2.0
    rows = ratings_for(db, park.id)
    assert len(rows) == 1
    assert rows[0].value == 2.0


def test_average_matches_mean_of_ratings(db, make_user, make_park):
    park = make_park()
    values = [5, 4.5, 3, 1, 2.5, 4]
    for value in values:
        rating_service.rate(db, park.id, make_user().id, value)

    db.refresh(park)
    assert park.avg_rating == pytest.approx(sum(values) / len(values), abs=1e-9)
    assert rating_service.count_ratings(db, park.id) == len(values)


def test_user_rating_lookup(db, make_user, make_park):
    user, other = make_user(), make_user()
    park = make_park()
    rating_service.rate(db, park.id, user.id, 3.5)

    assert rating_service.get_user_rating(db, park.id, user.id) == 3.5
    assert rating_service.get_user_rating(db, park.id, other.id) is None
    assert rating_service.get_user_rating(db, park.id, None) is None


@pytest.mark.parametrize("value", [0, 0.5, 5.5, 6, 3.3, -1, float("nan"), float("inf"), "4", None, True])
def test_invalid_values_are_rejected_without_writes(db, make_user, make_park, value):
    user = make_user()
    park = make_park()

    with pytest.raises(ValidationError):
        rating_service.rate(db, park.id, user.id, value)

    assert ratings_for(db, park.id) == []
    db.refresh(park)
    assert park.avg_rating == 0


def test_rating_missing_park_or_user(db, make_user, make_park):
    user = make_user()
    park = make_park()

    with pytest.raises(NotFoundError):
        rating_service.rate(db, 9999, user.id, 4)
    with pytest.raises(NotFoundError):
        rating_service.rate(db, park.id, 9999, 4)


def test_average_of_no_ratings_is_zero():
    assert rating_service.average([]) == 0.0
    assert rating_service.average([1, 2]) == 1.5


def test_recalculate_all_fixes_drift(db, make_user, make_park):
    park = make_park()
    untouched = make_park()
    rating_service.rate(db, park.id, make_user().id, 4)
    rating_service.rate(db, park.id, make_user().id, 5)

    park.avg_rating = 1.0
    db.commit()

    assert rating_service.recalculate_all(db) == 1
    db.refresh(park)
    db.refresh(untouched)
    assert park.avg_rating == pytest.approx(4.5)
    assert untouched.avg_rating == 0


def check_concurrent_raters(engine):
    """Eight users rate one park at once; every value must reach avg_rating"""
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = Session()
    park = Skatepark(
        title="Shared Bowl", tags=[], size="Large", levels=["All Levels"], is_park=True,
        latitude=10.0, longitude=20.0, photo_names=["default.jpg"]
    )
    users = [User(name=f"skater{i}", role="User") for i in range(8)]
    setup.add(park)
    setup.add_all(users)
    setup.commit()
    park_id = park.id
    user_ids = [u.id for u in users]
    setup.close()

    values = [1, 1.5, 2, 2.5, 3, 3.5, 4, 5]
    errors = []
    barrier = threading.Barrier(len(user_ids))

    def worker(user_id, value):
        session = Session()
        try:
            barrier.wait()
            rating_service.rate(session, park_id, user_id, value)
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [
        threading.Thread(target=worker, args=(user_id, value))
        for user_id, value in zip(user_ids, values)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    check = Session()
    try:
        rows = ratings_for(check, park_id)
        assert len(rows) == len(values)
        stored = check.query(Skatepark).filter(Skatepark.id == park_id).one()
        assert stored.avg_rating == pytest.approx(sum(values) / len(values), abs=1e-9)
    finally:
        check.close()


def test_concurrent_raters_all_persist(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'ratings.db'}", connect_args={"timeout": 30})
    init_db(bind=engine)
    try:
        check_concurrent_raters(engine)
    finally:
        engine.dispose()


@pytest.mark.skipif(not POSTGRES_URL, reason="SKATEGUIDE_TEST_POSTGRES_URL not set")
def test_concurrent_raters_all_persist_on_postgres():
    engine = build_engine(POSTGRES_URL)
    Base.metadata.drop_all(bind=engine)
    init_db(bind=engine)
    try:
        check_concurrent_raters(engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_rate_locks_the_park_row(db, make_user, make_park):
    park = make_park()
    user = make_user()
    locked = []

    def capture(state):
        if state.is_select:
            sql = str(state.statement.compile(dialect=postgresql.dialect()))
            if "FROM skateparks" in sql and sql.rstrip().endswith("FOR UPDATE"):
                locked.append(sql)

    event.listen(db, "do_orm_execute", capture)
    try:
        rating_service.rate(db, park.id, user.id, 3)
    finally:
        event.remove(db, "do_orm_execute", capture)

    assert len(locked) == 1


def test_same_user_double_submission_keeps_one_row(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'double.db'}", connect_args={"timeout": 30})
    init_db(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = Session()
    park = Skatepark(
        title="Ledges", tags=[], size="Small", levels=["Expert"], is_park=False,
        latitude=11.0, longitude=21.0, photo_names=["default.jpg"]
    )
    user = User(name="twice", role="User")
    setup.add_all([park, user])
    setup.commit()
    park_id, user_id = park.id, user.id
    setup.close()

    def worker(value):
        session = Session()
        try:
            rating_service.rate(session, park_id, user_id, value)
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(v,)) for v in (2, 4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    check = Session()
    try:
        rows = ratings_for(check, park_id)
        assert len(rows) == 1
        stored = check.query(Skatepark).filter(Skatepark.id == park_id).one()
        assert stored.avg_rating == rows[0].value
        assert rows[0].value in (2.0, 4.0)
    finally:
        check.close()
        engine.dispose()
