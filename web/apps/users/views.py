from rest_framework import status
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.common.errors import ServiceError
from apps.common.responses import error_response, page_params, paginated, success
from apps.common.schemas import validate_payload
from apps.orders.schemas import OrderReadDTO

from .repository import UserRepository
from .schemas import CreateUserDTO, UpdateUserDTO, UserReadDTO


def _dump(user) -> dict:
    return UserReadDTO.model_validate(user, from_attributes=True).model_dump(mode="json")


class UsersCollectionView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "users"

    def get(self, request):
        page, limit = page_params(request.query_params)
        users, total = UserRepository().list(page, limit)
        return paginated([_dump(u) for u in users], "Users retrieved successfully", page, limit, total)

    def post(self, request):
        try:
            dto = validate_payload(CreateUserDTO, request.data)
            user = UserRepository().create(dto.name, dto.email)
        except ServiceError as e:
            return error_response(e)
        return success(_dump(user), "User created successfully", status=status.HTTP_201_CREATED)


class UserDetailView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "users"

    def get(self, request, user_id: int):
        try:
            user = UserRepository().get(user_id)
        except ServiceError as e:
            return error_response(e)
        return success(_dump(user), "User retrieved successfully")

    def put(self, request, user_id: int):
        try:
            dto = validate_payload(UpdateUserDTO, request.data)
            user = UserRepository().update(user_id, name=dto.name, email=dto.email)
        except ServiceError as e:
            return error_response(e)
        return success(_dump(user), "User updated successfully")

    patch = put

    def delete(self, request, user_id: int):
        try:
            UserRepository().delete(user_id)
        except ServiceError as e:
            return error_response(e)
        return success(None, "User deleted successfully")


class UserOrdersView(APIView):
    """Orders placed by one user, newest first, plus ``orderCount``."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "users"

    def get(self, request, user_id: int):
        page, limit = page_params(request.query_params)
        try:
            user, orders, total = UserRepository().orders(user_id, page, limit)
        except ServiceError as e:
            return error_response(e)
        resp = paginated(
            [OrderReadDTO.from_domain(o).to_json() for o in orders],
            "User orders retrieved successfully",
            page,
            limit,
            total,
        )
        resp.data["user"] = _dump(user)
        resp.data["orderCount"] = total
        return resp
