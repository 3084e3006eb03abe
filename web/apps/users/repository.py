"""Repository for user records.

Returns ``UserModel`` instances and raises the shared ``ServiceError``
taxonomy so views never handle ORM exceptions directly.
"""

import logging

from django.db import IntegrityError, transaction

from apps.common.errors import ConflictError, NotFoundError
from apps.common.responses import paginate
from apps.orders.repository import OrderRepository

from .models import UserModel

logger = logging.getLogger("storefront.users")


class UserRepository:
    """CRUD access to the ``users`` table."""

    def create(self, name: str, email: str) -> UserModel:
        """Create a user.

        Raises:
            ConflictError: If the email is already registered.
        """
        if UserModel.objects.filter(email=email).exists():
            raise ConflictError(f"Email {email} is already in use")
        try:
            with transaction.atomic():
                user = UserModel.objects.create(name=name, email=email)
        except IntegrityError as e:
            raise ConflictError(f"Email {email} is already in use") from e
        logger.info("user created", extra={"user_id": user.id})
        return user

    def get(self, user_id: int) -> UserModel:
        try:
            return UserModel.objects.get(pk=user_id)
        except UserModel.DoesNotExist:
            raise NotFoundError(f"User with ID {user_id} not found")

    def list(self, page: int, limit: int) -> tuple[list[UserModel], int]:
        return paginate(UserModel.objects.order_by("-created_at", "-id"), page, limit)

    def update(self, user_id: int, name: str | None = None, email: str | None = None) -> UserModel:
        """Update name and/or email, keeping omitted fields.

        Raises:
            NotFoundError: If the user does not exist.
            ConflictError: If the new email belongs to another user.
        """
        with transaction.atomic():
            try:
                user = UserModel.objects.select_for_update().get(pk=user_id)
            except UserModel.DoesNotExist:
                raise NotFoundError(f"User with ID {user_id} not found")

            if email and email != user.email:
                if UserModel.objects.filter(email=email).exclude(pk=user_id).exists():
                    raise ConflictError(f"Email {email} is already in use")
                user.email = email
            if name:
                user.name = name
            try:
                with transaction.atomic():
                    user.save(update_fields=["name", "email"])
            except IntegrityError as e:
                raise ConflictError(f"Email {email} is already in use") from e
        return user

    def orders(self, user_id: int, page: int, limit: int):
        """Return ``(user, orders, total)`` for one page of the user's orders.

        Raises:
            NotFoundError: If the user does not exist.
        """
        user = self.get(user_id)
        orders, total = OrderRepository().list(page, limit, user_id=user.id)
        return user, orders, total

    def delete(self, user_id: int) -> None:
        """Delete a user; their orders go with them (cascade)."""
        deleted, _ = UserModel.objects.filter(pk=user_id).delete()
        if not deleted:
            raise NotFoundError(f"User with ID {user_id} not found")
        logger.info("user deleted", extra={"user_id": user_id})
