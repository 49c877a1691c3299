"""
User Service - accounts, credentials and admin account management
"""
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, Any, Optional
from sqlalchemy.orm import Session
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError

from skateguide.db.models import Credentials, Favorite, Skatepark, SkateparkRating, User
from skateguide.exceptions import (
    ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
)
from skateguide.schemas.schemas import Actor, ActivityType, RegisterRequest, Role
from skateguide.services.activity_service import activity_service
from skateguide.services.authorization_service import authorization_service
from skateguide.services.favorites_service import favorites_service
from skateguide.services.media_service import MediaStorage
from skateguide.services.rating_service import rating_service
from skateguide.services.security_service import security_service
from skateguide.services.skatepark_service import skatepark_service

logger = logging.getLogger(__name__)


class UserService:
    """Service for user accounts"""

    def get_user(self, db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError(f"User with id {user_id} not found.")
        return user

    def to_actor(self, user: User) -> Actor:
        return Actor(id=user.id, role=Role(user.role))

    # ------------------------------------------------------------------
    # Registration / session
    # ------------------------------------------------------------------
    def register(self, db: Session, data: RegisterRequest) -> User:
        """Create the user and credentials rows together"""
        email = data.email.lower()
        if db.query(Credentials.user_id).filter(Credentials.email == email).first():
            raise ValidationError("Email is already registered.")

        user = User(name=data.name, role=Role.user.value, is_active=False)
        user.credentials = Credentials(
            email=email,
            password_hash=security_service.hash_password(data.password)
        )
        try:
            db.add(user)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise ValidationError("Email is already registered.") from e
        except Exception:
            db.rollback()
            raise

        db.refresh(user)
        logger.info(f"Registered user {user.id}")
        return user

    def login(self, db: Session, email: str, password: str) -> Dict[str, Any]:
        """Verify credentials and issue an access token"""
        credentials = db.query(Credentials).filter(
            Credentials.email == email.lower()
        ).first()
        if not credentials or not security_service.verify_password(password, credentials.password_hash):
            logger.info(f"Failed login attempt for {email.lower()}")
            raise UnauthorizedError("Invalid email or password.")

        user = credentials.user
        try:
            user.is_active = True
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(user)
        return {
            "access_token": security_service.create_access_token(user.id),
            "token_type": "bearer",
            "user": user
        }

    def logout(self, db: Session, user_id: int, actor: Optional[Actor]) -> None:
        actor = authorization_service.ensure_actor(actor)
        if actor.id != user_id:
            raise ForbiddenError("You can only log out yourself.")

        user = self.get_user(db, user_id)
        try:
            user.is_active = False
            db.commit()
        except Exception:
            db.rollback()
            raise

    # ------------------------------------------------------------------
    # Password
    # ------------------------------------------------------------------
    def change_password(
        self,
        db: Session,
        user_id: int,
        new_password: str,
        actor: Optional[Actor],
        current_password: Optional[str] = None
    ) -> None:
        """Owner change (verified) or admin reset of a non-admin account"""
        actor = authorization_service.ensure_actor(actor)
        user = self.get_user(db, user_id)
        credentials = user.credentials
        if credentials is None:
            raise NotFoundError(f"Credentials for user {user_id} not found.")

        if actor.id == user.id:
            if not security_service.verify_password(current_password, credentials.password_hash):
                raise UnauthorizedError("Current password is incorrect.")
            admin_reset = False
        else:
            authorization_service.ensure_can_manage_user(actor, user)
            admin_reset = True

        try:
            credentials.password_hash = security_service.hash_password(new_password)
            if admin_reset:
                activity_service.record(
                    db, ActivityType.password_changed, actor.id, "user", user.id
                )
            db.commit()
        except Exception:
            db.rollback()
            raise

        if admin_reset:
            logger.info(f"Admin {actor.id} reset the password of user {user.id}")
        else:
            logger.info(f"User {user.id} changed their password")

    # ------------------------------------------------------------------
    # Admin account management
    # ------------------------------------------------------------------
    def update_role(self, db: Session, user_id: int, role: Role, actor: Optional[Actor]) -> User:
        actor = authorization_service.ensure_admin(actor)
        if actor.id == user_id:
            raise ValidationError("You cannot change your own role.")

        user = self.get_user(db, user_id)
        if user.role == Role.admin.value:
            raise ForbiddenError("Admins cannot change another admin's role.")

        previous = user.role
        try:
            user.role = role.value
            activity_service.record(
                db, ActivityType.user_role_changed, actor.id, "user", user.id,
                {"from": previous, "to": role.value}
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(user)
        logger.info(f"Admin {actor.id} changed role of user {user.id}: {previous} -> {role.value}")
        return user

    def delete_user_as_admin(
        self,
        db: Session,
        user_id: int,
        actor: Optional[Actor],
        media: MediaStorage
    ) -> str:
        actor = authorization_service.ensure_admin(actor)
        if actor.id == user_id:
            raise ValidationError("Use account deletion to remove your own account.")

        user = self.get_user(db, user_id)
        if user.role == Role.admin.value:
            raise ForbiddenError("Admins cannot delete other admins.")

        return self._delete(db, user, actor, media)

    def delete_account(
        self,
        db: Session,
        user_id: int,
        actor: Optional[Actor],
        media: MediaStorage
    ) -> str:
        """Self-service deletion; the last admin cannot leave"""
        actor = authorization_service.ensure_actor(actor)
        user = self.get_user(db, user_id)
        if actor.id != user.id:
            raise ForbiddenError("You can only delete your own account.")

        if user.role == Role.admin.value:
            admins = db.query(func.count(User.id)).filter(User.role == Role.admin.value).scalar()
            if admins <= 1:
                raise ValidationError("The last admin account cannot be deleted.")

        return self._delete(db, user, actor, media)

    def _delete(self, db: Session, user: User, actor: Actor, media: MediaStorage) -> str:
        """Remove the account and fix up the parks it rated or favorited"""
        user_id = user.id
        name = user.name
        photo_name = user.photo_name
        rated_park_ids = [
            row[0] for row in db.query(SkateparkRating.skatepark_id).filter(
                SkateparkRating.user_id == user_id
            ).all()
        ]
        favorite_park_ids = [
            row[0] for row in db.query(Favorite.skatepark_id).filter(
                Favorite.user_id == user_id
            ).all()
        ]

        try:
            if rated_park_ids:
                # Same lock raters take, so their averages and this one agree
                db.query(Skatepark.id).filter(
                    Skatepark.id.in_(rated_park_ids)
                ).order_by(Skatepark.id).with_for_update().all()
            db.delete(user)
            db.flush()
            for park_id in rated_park_ids:
                rating_service.apply_average(db, park_id)
            favorites_service.release_counts(db, favorite_park_ids)
            activity_service.record(
                db, ActivityType.user_deleted, actor.id, "user", user_id, {"name": name}
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        if photo_name:
            media.delete(photo_name)
        logger.info(
            f"User {user_id} deleted by user {actor.id} "
            f"({len(rated_park_ids)} ratings, {len(favorite_park_ids)} favorites removed)"
        )
        return f"User {name} has been deleted."

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------
    def get_stats(self, db: Session, user_id: int) -> Dict[str, Any]:
        """Spots a user added and the mean avg_rating across them"""
        self.get_user(db, user_id)
        total_spots, mean_rating = db.query(
            func.count(Skatepark.id), func.avg(Skatepark.avg_rating)
        ).filter(Skatepark.created_by == user_id).one()
        return {
            "user_id": user_id,
            "total_spots": total_spots or 0,
            "avg_rating": round(float(mean_rating or 0), 1)
        }

    def stats_overview(
        self,
        db: Session,
        actor: Optional[Actor],
        new_users_days: int = 30,
        top_contributors_limit: int = 5
    ) -> Dict[str, Any]:
        """
        Admin dashboard numbers.

        new_users_days is clamped to 1..60 and top_contributors_limit to 1..20.
        New users are bucketed per UTC day, oldest day first.
        """
        authorization_service.ensure_admin(actor)
        days = min(max(new_users_days, 1), 60)
        limit = min(max(top_contributors_limit, 1), 20)
        since = datetime.utcnow() - timedelta(days=days)

        total_users, admin_count = db.query(
            func.count(User.id),
            func.coalesce(func.sum(case((User.role == Role.admin.value, 1), else_=0)), 0)
        ).one()

        per_day = Counter(
            created_at.strftime("%Y-%m-%d")
            for (created_at,) in db.query(User.created_at).filter(User.created_at >= since).all()
        )

        overview = {
            "total_users": total_users,
            "admin_count": admin_count,
            "new_users_days": days,
            "new_users_by_day": [
                {"date": day, "count": per_day[day]} for day in sorted(per_day)
            ],
            "top_contributors": skatepark_service.top_contributors(db, limit=limit)
        }
        overview.update(skatepark_service.park_breakdown(db))
        return overview

    # ------------------------------------------------------------------
    # Profile photo
    # ------------------------------------------------------------------
    def upload_photo(
        self,
        db: Session,
        user_id: int,
        filename: str,
        content: bytes,
        actor: Optional[Actor],
        media: MediaStorage
    ) -> User:
        actor = authorization_service.ensure_actor(actor)
        if actor.id != user_id:
            raise ForbiddenError("You can only change your own photo.")

        user = self.get_user(db, user_id)
        previous = user.photo_name
        name = media.store(filename, content)
        try:
            user.photo_name = name
            db.commit()
        except Exception:
            db.rollback()
            media.delete(name)
            raise

        if previous:
            media.delete(previous)
        db.refresh(user)
        return user

    def delete_photo(
        self,
        db: Session,
        user_id: int,
        actor: Optional[Actor],
        media: MediaStorage
    ) -> User:
        """Owner or any admin"""
        actor = authorization_service.ensure_actor(actor)
        if actor.id != user_id and actor.role != Role.admin:
            raise ForbiddenError("You can only delete your own photo.")

        user = self.get_user(db, user_id)
        if not user.photo_name:
            raise ValidationError("User has no profile photo.")

        photo_name = user.photo_name
        try:
            user.photo_name = None
            db.commit()
        except Exception:
            db.rollback()
            raise

        media.delete(photo_name)
        db.refresh(user)
        logger.info(f"Profile photo of user {user_id} removed by user {actor.id}")
        return user


# Singleton instance
user_service = UserService()
