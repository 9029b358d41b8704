"""
JSON encoding for structured log entries shipped to the audit queue.

Anything that could carry key material is masked rather than serialized:
``SecretStr`` values and raw bytes never reach the payload.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID

from pydantic import BaseModel, SecretBytes, SecretStr

from ..constants import REDACTED


class AuditJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, (SecretStr, SecretBytes, bytes, bytearray)):
            return REDACTED
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (set, frozenset)):
            return sorted(obj, key=str)
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json")
        if isinstance(obj, BaseException):
            return f"{type(obj).__name__}: {obj}"
        return str(obj)


def dumps(obj: Any, **kwargs) -> str:
    """Compact JSON for a log entry."""
    kwargs.setdefault("separators", (",", ":"))
    return json.dumps(obj, cls=AuditJSONEncoder, **kwargs)


def loads(s: Union[str, bytes, bytearray], **kwargs) -> Any:
    return json.loads(s, **kwargs)
