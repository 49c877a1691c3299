"""
Authorization Service - who may approve, edit or delete what

Rules:
- Admins can do everything, except act on a resource or account that
  belongs to a different admin
- Owners can edit and delete their own resources but never approve them
- Everyone else, guests included, is read-only
"""
import logging
from typing import Optional

from skateguide.db.models import Skatepark, User
from skateguide.exceptions import ForbiddenError, UnauthorizedError
from skateguide.schemas.schemas import Actor, Capabilities, ResourceRef, Role

logger = logging.getLogger(__name__)


class AuthorizationService:
    """Capability decisions for parks and user accounts"""

    def capabilities(
        self,
        actor: Optional[Actor],
        resource: ResourceRef
    ) -> Capabilities:
        if actor is None:
            return Capabilities()

        is_owner = resource.created_by is not None and actor.id == resource.created_by

        if actor.role == Role.admin:
            if not is_owner and resource.owner_role == Role.admin:
                return Capabilities()
            return Capabilities(approve=True, edit=True, delete=True)

        if is_owner:
            return Capabilities(approve=False, edit=True, delete=True)

        return Capabilities()

    def park_resource(self, park: Skatepark) -> ResourceRef:
        owner_role = None
        if park.creator is not None:
            owner_role = Role(park.creator.role)
        return ResourceRef(
            created_by=park.created_by,
            owner_role=owner_role,
            is_approved=park.is_approved
        )

    def account_resource(self, user: User) -> ResourceRef:
        return ResourceRef(created_by=user.id, owner_role=Role(user.role))

    def ensure_actor(self, actor: Optional[Actor]) -> Actor:
        if actor is None:
            raise UnauthorizedError("Authentication required.")
        return actor

    def ensure_contributor(self, actor: Optional[Actor]) -> Actor:
        """Creating parks, rating, reporting and favoriting need a non-guest account"""
        actor = self.ensure_actor(actor)
        if actor.role == Role.guest:
            raise ForbiddenError("Guests have read-only access.")
        return actor

    def ensure_admin(self, actor: Optional[Actor]) -> Actor:
        actor = self.ensure_actor(actor)
        if actor.role != Role.admin:
            raise ForbiddenError("Admin access required.")
        return actor

    def ensure_can_approve(self, actor: Optional[Actor], resource: ResourceRef) -> None:
        actor = self.ensure_actor(actor)
        if not self.capabilities(actor, resource).approve:
            raise ForbiddenError("Only admins can approve skateparks.")

    def ensure_can_edit(self, actor: Optional[Actor], resource: ResourceRef) -> None:
        actor = self.ensure_actor(actor)
        if not self.capabilities(actor, resource).edit:
            raise ForbiddenError("You are not allowed to edit this resource.")

    def ensure_can_delete(self, actor: Optional[Actor], resource: ResourceRef) -> None:
        actor = self.ensure_actor(actor)
        if not self.capabilities(actor, resource).delete:
            raise ForbiddenError("You are not allowed to delete this resource.")

    def ensure_can_manage_user(self, actor: Optional[Actor], target: User) -> Actor:
        """Account operations: the account owner, or an admin on a non-admin account"""
        actor = self.ensure_actor(actor)
        if not self.capabilities(actor, self.account_resource(target)).edit:
            if actor.role == Role.admin:
                raise ForbiddenError("Admins cannot manage other admins.")
            raise ForbiddenError("You can only manage your own account.")
        return actor


# Singleton instance
authorization_service = AuthorizationService()
