"""Request parsing helpers shared by the controllers."""

from typing import TypeVar

from pydantic import BaseModel, ValidationError

from app.core.errors import InvalidInputError, NotFoundError
from app.core.router import RequestContext
from app.schemas.user import ID_MAX

ModelT = TypeVar("ModelT", bound=BaseModel)


def path_id(ctx: RequestContext, name: str, label: str) -> int:
    """
    Positive integer path parameter; anything else is a 400. Ids beyond the
    key column range cannot exist and are a 404.
    """
    raw = ctx.path_params.get(name, "")
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value < 1:
        raise InvalidInputError(f"{label} ID is required")
    if value > ID_MAX:
        raise NotFoundError(f"{label} not found")
    return value


def parse_body(model: type[ModelT], ctx: RequestContext) -> ModelT:
    try:
        return model.model_validate(ctx.body)
    except ValidationError as e:
        raise InvalidInputError.from_pydantic(e) from e


def parse_query(model: type[ModelT], ctx: RequestContext) -> ModelT:
    try:
        return model.model_validate(dict(ctx.query))
    except ValidationError as e:
        raise InvalidInputError.from_pydantic(e) from e
