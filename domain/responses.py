"""
Response envelope spoken by the backend.

Every endpoint answers with:
- { "success": true,  "message": "...", "data": <payload> }
- { "success": false, "message": "...", "data": null, "code": "..." }
"""
import logging
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from domain.errors import ServerError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class ApiEnvelope(BaseModel, Generic[T]):
    """Standard response envelope."""
    success: bool = Field(..., description="False means a business-rule failure")
    message: str | None = Field(default=None, description="Human-readable message")
    data: T | None = Field(default=None, description="Response payload")
    code: str | None = Field(default=None, description="Optional server error code")


def unwrap(body: Any, status_code: int | None = None) -> Any:
    """
    Return the payload of a successful envelope.

    Raises:
        ServerError if the body is not an envelope
        ValidationError if success is false
    """
    if not isinstance(body, dict) or "success" not in body:
        raise ServerError(status_code=status_code, details={"body": body})

    envelope = ApiEnvelope[Any].model_validate(body)
    if not envelope.success:
        raise ValidationError(
            envelope.message or "Request failed",
            code=envelope.code,
            status_code=status_code,
        )
    return envelope.data


def parse_model(model_cls: type[M], data: Any) -> M:
    """Validate a payload into model_cls; a mismatch is a server fault."""
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        logger.warning(f"Unexpected {model_cls.__name__} payload: {e.error_count()} error(s)")
        raise ServerError(details={"model": model_cls.__name__, "errors": e.errors()}) from e


def parse_models(model_cls: type[M], data: Any) -> list[M]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ServerError(details={"model": model_cls.__name__, "reason": "expected a list"})
    return [parse_model(model_cls, item) for item in data]
