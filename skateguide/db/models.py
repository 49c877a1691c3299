"""
SQLAlchemy ORM Models for the SkateGuide API
"""
from sqlalchemy import (
    Column, Integer, String, Text, Float, Boolean, DateTime,
    ForeignKey, JSON, UniqueConstraint, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from skateguide.db.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default="User")
    is_active = Column(Boolean, default=False, nullable=False)
    photo_name = Column(String(255))
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    __table_args__ = (
        CheckConstraint("role IN ('Admin', 'User', 'Guest')", name="ck_users_role"),
    )

    # Relationships
    credentials = relationship(
        "Credentials", back_populates="user", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True
    )
    favorites = relationship(
        "Favorite", back_populates="user", order_by="Favorite.id",
        cascade="all, delete-orphan", passive_deletes=True
    )


class Credentials(Base):
    __tablename__ = "credentials"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="credentials")


class Skatepark(Base):
    __tablename__ = "skateparks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(30), nullable=False)
    description = Column(String(300))
    tags = Column(JSON, nullable=False, default=list)
    size = Column(String(20), nullable=False)
    levels = Column(JSON, nullable=False, default=list)
    is_park = Column(Boolean, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    photo_names = Column(JSON, nullable=False, default=list)
    avg_rating = Column(Float, nullable=False, default=0)
    favorites_count = Column(Integer, nullable=False, default=0)
    is_approved = Column(Boolean, nullable=False, default=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("latitude", "longitude", name="uq_skatepark_location"),
        CheckConstraint("favorites_count >= 0", name="ck_skateparks_favorites_count"),
        Index("ix_skateparks_location", "latitude", "longitude"),
    )

    # Relationships
    creator = relationship("User", foreign_keys=[created_by])
    ratings = relationship(
        "SkateparkRating", back_populates="skatepark", order_by="SkateparkRating.id",
        cascade="all, delete-orphan", passive_deletes=True
    )
    external_links = relationship(
        "SkateparkLink", back_populates="skatepark", order_by="SkateparkLink.id",
        cascade="all, delete-orphan", passive_deletes=True
    )
    reports = relationship(
        "SkateparkReport", back_populates="skatepark", order_by="SkateparkReport.id",
        cascade="all, delete-orphan", passive_deletes=True
    )
    favorited_by = relationship(
        "Favorite", back_populates="skatepark",
        cascade="all, delete-orphan", passive_deletes=True
    )


class SkateparkRating(Base):
    __tablename__ = "skatepark_ratings"

    id = Column(Integer, primary_key=True, index=True)
    skatepark_id = Column(Integer, ForeignKey("skateparks.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    value = Column(Float, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("skatepark_id", "user_id", name="uq_skatepark_user_rating"),
        CheckConstraint("value >= 1 AND value <= 5", name="ck_skatepark_ratings_value"),
    )

    skatepark = relationship("Skatepark", back_populates="ratings")


class SkateparkLink(Base):
    __tablename__ = "skatepark_links"

    id = Column(Integer, primary_key=True, index=True)
    skatepark_id = Column(Integer, ForeignKey("skateparks.id", ondelete="CASCADE"), nullable=False)
    url = Column(Text, nullable=False)
    sent_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    sent_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("skatepark_id", "url", name="uq_skatepark_link_url"),
    )

    skatepark = relationship("Skatepark", back_populates="external_links")


class SkateparkReport(Base):
    __tablename__ = "skatepark_reports"

    id = Column(Integer, primary_key=True, index=True)
    skatepark_id = Column(Integer, ForeignKey("skateparks.id", ondelete="CASCADE"), nullable=False)
    reported_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reason = Column(String(300), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("skatepark_id", "reported_by", name="uq_skatepark_user_report"),
    )

    skatepark = relationship("Skatepark", back_populates="reports")


class Favorite(Base):
    __tablename__ = "favorites"

    # Autoincrement id doubles as the insertion order of a user's favorites
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    skatepark_id = Column(Integer, ForeignKey("skateparks.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "skatepark_id", name="uq_user_favorite"),
    )

    user = relationship("User", back_populates="favorites")
    skatepark = relationship("Skatepark", back_populates="favorited_by")


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=False, index=True)
    actor_user_id = Column(Integer, nullable=False)
    target_type = Column(String(20), nullable=False)
    target_id = Column(Integer, nullable=False)
    details = Column("metadata", JSON)
    created_at = Column(DateTime, server_default=func.now(), index=True)
