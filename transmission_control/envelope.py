"""
Request and response envelopes for the daemon's JSON RPC.
"""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError

from .exceptions import TransportError, ValidationError

SUCCESS = "success"


class RequestEnvelope(BaseModel):
    """Body of an RPC request: method name, optional arguments, correlation tag."""
    method: str
    arguments: Optional[Dict[str, Any]] = None
    tag: Optional[int] = None

    def to_body(self) -> bytes:
        """
        Serialize to the JSON body, leaving out absent keys.

        Raises:
            ValidationError: an argument value has no JSON representation
        """
        try:
            return json.dumps(
                self.model_dump(exclude_none=True), allow_nan=False
            ).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise ValidationError(
                f"Arguments for {self.method} are not JSON serializable",
                details=str(e),
            ) from e


class ResponseEnvelope(BaseModel):
    """Body of an RPC response."""
    result: str
    arguments: Dict[str, Any] = {}
    tag: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.result == SUCCESS

    @classmethod
    def from_body(cls, body: bytes) -> "ResponseEnvelope":
        """
        Parse a raw HTTP body.

        Raises:
            TransportError: if the body is not a JSON object with a "result"
        """
        try:
            data = json.loads(body)
        except (TypeError, ValueError) as e:
            raise TransportError("Malformed response body", details=str(e)) from e

        if not isinstance(data, dict):
            raise TransportError(
                "Malformed response body",
                details=f"expected object, got {type(data).__name__}",
            )

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise TransportError(
                "Malformed response envelope",
                details=f"{e.error_count()} validation error(s)",
            ) from e
