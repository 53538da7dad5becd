"""Accommodation endpoints: public listing and lookup, admin create/update/delete."""

from typing import Any

from app.api.middleware import current_user
from app.api.params import parse_body, parse_query, path_id
from app.core.router import Reply, RequestContext, success_reply
from app.schemas.accommodation import (
    AccommodationCreate,
    AccommodationFilters,
    AccommodationRead,
    AccommodationUpdate,
)
from app.services.accommodation import AccommodationService


def _dump(accommodation: AccommodationRead) -> dict[str, Any]:
    return accommodation.model_dump(mode="json")


class AccommodationController:
    def __init__(self, service: AccommodationService) -> None:
        self._service = service

    def list(self, ctx: RequestContext) -> dict[str, Any]:
        """
        GET /api/accommodations.
        Exactly one filter applies (see AccommodationService.list_filtered);
        filters_applied echoes every recognised parameter.
        """
        filters = parse_query(AccommodationFilters, ctx)
        accommodations = [_dump(a) for a in self._service.list_filtered(filters)]
        return {
            "success": True,
            "accommodations": accommodations,
            "total": len(accommodations),
            "filters_applied": filters.model_dump(),
        }

    def get(self, ctx: RequestContext) -> dict[str, Any]:
        accommodation = self._service.get(path_id(ctx, "id", "Accommodation"))
        return {"success": True, "accommodation": _dump(accommodation)}

    def create(self, ctx: RequestContext) -> Reply:
        data = parse_body(AccommodationCreate, ctx)
        accommodation = self._service.create(data)
        admin = current_user(ctx)
        return success_reply(
            "Accommodation created successfully",
            201,
            accommodation=_dump(accommodation),
            created_by={
                "admin_id": admin.id if admin else None,
                "admin_username": admin.username if admin else None,
            },
        )

    def update(self, ctx: RequestContext) -> Reply:
        accommodation_id = path_id(ctx, "id", "Accommodation")
        data = parse_body(AccommodationUpdate, ctx)
        accommodation = self._service.update(accommodation_id, data)
        return success_reply("Accommodation updated successfully", accommodation=_dump(accommodation))

    def delete(self, ctx: RequestContext) -> Reply:
        accommodation_id = path_id(ctx, "id", "Accommodation")
        self._service.delete(accommodation_id)
        return success_reply("Accommodation deleted successfully", accommodation_id=accommodation_id)
