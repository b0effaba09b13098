"""Shared base for daemon wire models."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

# The daemon emits RFC 3339 timestamps with nanosecond precision.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")

ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)


def _trim_fraction(value: Any) -> Any:
    if isinstance(value, str):
        return _FRACTION_RE.sub(r"\1", value)
    return value


DaemonTime = Annotated[datetime, BeforeValidator(_trim_fraction)]


class DaemonModel(BaseModel):
    """Base for payloads exchanged with the daemon.

    Fields are snake_case in Python and camelCase on the wire. Unknown
    fields are kept so that a model can be written back (``PUT /rest/config``)
    without losing settings this client does not know about.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump with wire names, ready for a JSON request body."""
        return self.model_dump(mode="json", by_alias=True)
