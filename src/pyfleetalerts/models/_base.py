"""Base model for alert-service and registry payloads.

Every wire model inherits from :class:`FleetBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase service keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` values and
  blank strings so the field default is used.
* ``to_payload()`` producing the camelCase JSON body the service expects.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class FleetBaseModel(BaseModel):
    """Base for alert-service and vehicle-registry models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {
            key: value
            for key, value in values.items()
            if value is not None and not (isinstance(value, str) and not value.strip())
        }

    def to_payload(self) -> dict[str, Any]:
        """Serialize to a camelCase JSON-compatible dict, omitting unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
