from datetime import datetime, timezone
from typing import Annotated, Any, ClassVar

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def ensure_aware(dt: datetime) -> datetime:
    """Make a naive datetime timezone-aware (assume UTC) for safe comparison."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


UtcDatetime = Annotated[datetime, AfterValidator(ensure_aware)]


class ApiModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
        validate_default=True,
    )


class PartialUpdate(ApiModel):
    """Update payload where every field is optional.

    Only fields listed in ``nullable_fields`` may be cleared with an explicit null;
    a null for any other field is ignored.
    """

    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    def changes(self) -> dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        return {
            key: value
            for key, value in data.items()
            if value is not None or key in self.nullable_fields
        }


class MessageResponse(BaseModel):
    message: str
