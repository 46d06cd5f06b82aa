"""Turn pydantic validation failures into domain ValidationErrors."""
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from stockpile.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def format_error(error: Mapping[str, Any]) -> str:
    """Render one pydantic error as ``field: message``."""
    location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def validate_model(model: type[ModelT], data: Mapping[str, Any]) -> ModelT:
    """Validate ``data`` against ``model``, reporting every violation at once."""
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise ValidationError([format_error(error) for error in exc.errors()]) from exc
