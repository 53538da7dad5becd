"""The caller's saved accommodations, plus the admin user listing."""

from typing import Any

from app.api.middleware import current_user_id
from app.api.params import parse_body, path_id
from app.core.router import Reply, RequestContext, success_reply
from app.schemas.user import BookmarkRequest
from app.services.user import UserService


class UserController:
    def __init__(self, service: UserService) -> None:
        self._service = service

    def list_accommodations(self, ctx: RequestContext) -> Reply:
        user_id = current_user_id(ctx)
        accommodations = self._service.get_user_accommodations(user_id)
        return success_reply(
            "User accommodations retrieved successfully",
            data={
                "user_id": user_id,
                "accommodations": [a.model_dump(mode="json") for a in accommodations],
            },
        )

    def add_accommodation(self, ctx: RequestContext) -> Reply:
        user_id = current_user_id(ctx)
        data = parse_body(BookmarkRequest, ctx)
        self._service.add_accommodation_to_user(user_id, data.accommodation_id)
        return success_reply(
            "Accommodation added to user account successfully",
            201,
            data={"user_id": user_id, "accommodation_id": data.accommodation_id},
        )

    def remove_accommodation(self, ctx: RequestContext) -> Reply:
        user_id = current_user_id(ctx)
        accommodation_id = path_id(ctx, "accommodation_id", "Accommodation")
        self._service.remove_accommodation_from_user(user_id, accommodation_id)
        return success_reply(
            "Accommodation removed from user account successfully",
            data={"user_id": user_id, "accommodation_id": accommodation_id},
        )

    def list_users(self, ctx: RequestContext) -> dict[str, Any]:
        """Admin only."""
        users = [u.model_dump(mode="json") for u in self._service.list_users()]
        return {"success": True, "users": users, "total": len(users)}
