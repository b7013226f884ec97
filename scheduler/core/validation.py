# scheduler/core/validation.py

from __future__ import annotations

from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from scheduler.core.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(model_cls: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """
    Validates ``data`` against ``model_cls``; pydantic errors become a
    ``ValidationError`` whose details map each field to its first message.
    """
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        fields: Dict[str, str] = {}
        for err in exc.errors():
            key = ".".join(str(part) for part in err["loc"]) or "__root__"
            fields.setdefault(key, err["msg"])
        raise ValidationError("Invalid input", fields) from exc
