"""
Base Schema Classes for Pydantic Models

The booking API speaks camelCase JSON (``mobileNumber``, ``consignmentNumber``) while
Python code uses snake_case attributes. Every schema inherits one of the bases below,
which alias fields to camelCase and still accept snake_case on input.

RULE: All response schemas that use `from_attributes=True` MUST inherit from BaseResponseSchema.
"""

from decimal import Decimal
from typing import Annotated, Any, Optional
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Features:
    - Enables from_attributes for ORM compatibility
    - camelCase aliases on output (FastAPI serializes by alias)
    - Allow population by field name or alias

    Usage:
        class ColoaderResponse(BaseResponseSchema):
            id: UUID
            company_name: str
    """
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    Accepts camelCase (as sent by the booking form) or snake_case keys.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        # Allow extra fields to be ignored (forward compatibility)
        extra='ignore',
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for update/patch schemas.

    All fields are optional by default for partial updates.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )


class Pagination(BaseResponseSchema):
    page: int
    limit: int
    total: int
    pages: int


def blank_to_none(value: Any) -> Any:
    """Form inputs send "" for untouched fields."""
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


# A non-negative number typed into a form: accepts 12, 12.5, "12.5", "" (-> None)
FormNumber = Annotated[Optional[Annotated[Decimal, Field(ge=0)]], BeforeValidator(blank_to_none)]

# Type aliases for common UUID patterns
UUIDField = UUID
OptionalUUID = Optional[UUID]
