"""Response envelope shared by every user-service endpoint."""

from typing import Any

from pydantic import BaseModel


class ResponseEnvelope(BaseModel):
    """Either ``error`` or ``payload`` is set; both are null on a bare success."""

    error: str | None = None
    payload: dict[str, Any] | None = None
