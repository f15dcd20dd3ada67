"""Request validation and error translation at the tool boundary.

Tool arguments arrive as untyped JSON. They are validated against the
request models in ``retail_order_core.data.models`` before reaching the core,
and the core's typed errors are turned into structured results on the way
out. Transient store errors are not converted: they propagate so the caller
can decide whether to retry.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from retail_order_core.errors import OrderCoreError, TransientStoreError, ValidationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def validate_request(model: type[M], **arguments: Any) -> M:
    """
    Build a request model from raw tool arguments.

    Arguments passed as None fall back to the model defaults.

    Raises:
        ValidationError: If the arguments do not satisfy the model
    """
    provided = {k: v for k, v in arguments.items() if v is not None}
    try:
        return model.model_validate(provided)
    except SchemaValidationError as e:
        raise ValidationError(
            f"Invalid arguments for {model.__name__}",
            errors=e.errors(include_url=False, include_context=False),
        ) from e


def to_jsonable(value: Any) -> Any:
    """
    Convert models, datetimes and enums into JSON-ready values.

    Decimals are money and are emitted as strings ("12.50") so amounts keep
    their exact cents.
    """
    if isinstance(value, BaseModel):
        return to_jsonable(value.model_dump())
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def error_results(func: Callable[..., Awaitable[dict[str, Any]]]) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Return business errors as {"success": False, ...}; let transient errors propagate."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> dict[str, Any]:
        try:
            return await func(*args, **kwargs)
        except TransientStoreError:
            raise
        except OrderCoreError as e:
            logger.warning(f"{func.__name__} failed: {e.code}: {e.message}")
            return to_jsonable(e.to_dict())

    return wrapper
