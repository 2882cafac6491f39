"""Base model for pylocate data exchanged between nodes.

Every model inherits from :class:`LocatorBaseModel` which provides:

* ``alias_generator=to_camel`` so snake_case fields are sent as the
  camelCase keys used on the cross-node wire (``placeData``,
  ``timezoneData``, ...).
* ``populate_by_name=True`` so models can be built from either form.
* Frozen instances: a result is replaced wholesale, never patched.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class LocatorBaseModel(BaseModel):
    """Base for models that cross the node boundary."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
