#!/usr/bin/env python3
"""
Database Seeder for SkateGuide

Populates the database with an admin, some skaters and parks scattered
around a city centre, plus ratings and favorites written through the
services so averages and counters stay consistent.

Usage:
    # From project root with venv activated:
    python scripts/seed_database.py

    # With options:
    python scripts/seed_database.py --users 20 --parks 40 --clear
"""
import argparse
import os
import random
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Configuration
DEFAULT_NUM_USERS = 10
DEFAULT_NUM_PARKS = 25
DEFAULT_CENTER = (-23.5505, -46.6333)
SEED_PASSWORD = "skate1234"

NAMES = [
    "Tony", "Rodney", "Elissa", "Leticia", "Nyjah", "Rayssa", "Pedro", "Bob",
    "Lizzie", "Sky", "Chris", "Nora", "Yuto", "Sakura", "Kelvin", "Pamela"
]

PARK_WORDS = [
    "Plaza", "Bowl", "Spot", "Ledges", "Banks", "Pool", "DIY", "Mini",
    "Central", "Harbor", "Riverside", "Underpass", "Hill", "Square"
]


def random_coordinates(center, spread_km: float = 15.0):
    """Random point roughly within spread_km of center"""
    lat, lng = center
    delta = spread_km / 111.0
    return (
        round(lat + random.uniform(-delta, delta), 6),
        round(lng + random.uniform(-delta, delta), 6)
    )


def seed_database(
    num_users: int = DEFAULT_NUM_USERS,
    num_parks: int = DEFAULT_NUM_PARKS,
    clear_existing: bool = False
):
    """Main seeding function"""
    from skateguide.db.database import Base, SessionLocal, engine, init_db
    from skateguide.db import models
    from skateguide.schemas.schemas import (
        Actor, RegisterRequest, Role, Size, SkaterLevel, SkateparkCreate, Tag
    )
    from skateguide.services.favorites_service import favorites_service
    from skateguide.services.media_service import get_media_storage
    from skateguide.services.rating_service import rating_service
    from skateguide.services.skatepark_service import skatepark_service
    from skateguide.services.user_service import user_service

    print("=" * 60)
    print("SkateGuide Database Seeder")
    print("=" * 60)
    print(f"Users: {num_users}")
    print(f"Parks: {num_parks}")
    print()

    if clear_existing:
        print("Dropping existing tables...")
        Base.metadata.drop_all(bind=engine)
    init_db()

    db = SessionLocal()
    media = get_media_storage()

    try:
        # =====================================================================
        # 1. Users
        # =====================================================================
        print("\n1. Seeding users...")
        admin = user_service.register(db, RegisterRequest(
            name="Admin", email="admin@skateguide.dev", password=SEED_PASSWORD
        ))
        admin.role = Role.admin.value
        db.commit()

        users = [admin]
        for idx in range(num_users):
            name = random.choice(NAMES)
            users.append(user_service.register(db, RegisterRequest(
                name=name, email=f"{name.lower()}{idx}@skateguide.dev", password=SEED_PASSWORD
            )))
        print(f"  Created {len(users)} users (password: {SEED_PASSWORD})")

        # =====================================================================
        # 2. Parks
        # =====================================================================
        print("\n2. Seeding parks...")
        parks = []
        while len(parks) < num_parks:
            owner = random.choice(users)
            lat, lng = random_coordinates(DEFAULT_CENTER)
            if db.query(models.Skatepark.id).filter_by(latitude=lat, longitude=lng).first():
                continue
            data = SkateparkCreate(
                title=f"{random.choice(PARK_WORDS)} {random.choice(PARK_WORDS)}"[:30],
                description="Seeded skatepark",
                tags=random.sample(list(Tag), k=random.randint(1, 4)),
                size=random.choice(list(Size)),
                levels=random.sample(list(SkaterLevel), k=random.randint(1, 2)),
                is_park=random.random() < 0.7,
                latitude=lat,
                longitude=lng
            )
            park = skatepark_service.add_skatepark(
                db, data, Actor(id=owner.id, role=Role(owner.role)), media
            )
            if random.random() < 0.6:
                park.is_approved = True
                db.commit()
            parks.append(park)
        print(f"  Created {len(parks)} parks")

        # =====================================================================
        # 3. Ratings and favorites
        # =====================================================================
        print("\n3. Seeding ratings and favorites...")
        rating_count = 0
        favorite_count = 0
        for user in users:
            for park in random.sample(parks, k=min(len(parks), random.randint(0, 8))):
                rating_service.rate(db, park.id, user.id, random.randint(2, 10) / 2)
                rating_count += 1
            for park in random.sample(parks, k=min(len(parks), random.randint(0, 5))):
                favorites_service.toggle_favorite(db, user.id, park.id)
                favorite_count += 1
        print(f"  Created {rating_count} ratings and {favorite_count} favorites")

        print("\n" + "=" * 60)
        print("Database seeding complete!")
        print("=" * 60)

    except Exception as e:
        db.rollback()
        print(f"\nError during seeding: {e}")
        raise
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(
        description="Seed SkateGuide database with sample data"
    )
    parser.add_argument(
        "--users", "-u",
        type=int,
        default=DEFAULT_NUM_USERS,
        help=f"Number of users besides the admin (default: {DEFAULT_NUM_USERS})"
    )
    parser.add_argument(
        "--parks", "-p",
        type=int,
        default=DEFAULT_NUM_PARKS,
        help=f"Number of parks (default: {DEFAULT_NUM_PARKS})"
    )
    parser.add_argument(
        "--clear", "-c",
        action="store_true",
        help="Drop existing tables before seeding"
    )

    args = parser.parse_args()

    seed_database(
        num_users=args.users,
        num_parks=args.parks,
        clear_existing=args.clear
    )


if __name__ == "__main__":
    main()
