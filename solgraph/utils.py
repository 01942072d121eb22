import hashlib
import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any


__all__ = ["SolgraphError", "SnapshotError", "UnknownTypeError", "make_json_serializable", "content_hash"]


class SolgraphError(Exception):
    def __init__(self, message, logger=None):
        super().__init__(message)
        self.message = message
        if logger:
            logger.log(message, level="ERROR")

    def dict(self) -> dict[str, str]:
        return {"type": self.__class__.__name__, "message": str(self.message)}


class SnapshotError(SolgraphError):
    """A snapshot entry could not be converted into source model records."""
    pass


class UnknownTypeError(SolgraphError):
    """Raised by the CLI when a requested type is absent from the snapshot."""
    pass


def make_json_serializable(obj: Any) -> Any:
    if obj is None:
        return None
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, (str, int, float, bool)):
        return obj
    elif hasattr(obj, "to_dict"):
        return make_json_serializable(obj.to_dict())
    elif is_dataclass(obj) and not isinstance(obj, type):
        return make_json_serializable(asdict(obj))
    elif isinstance(obj, (list, tuple, set)):
        return [make_json_serializable(item) for item in obj]
    elif isinstance(obj, dict):
        return {str(k): make_json_serializable(v) for k, v in obj.items()}
    else:
        return str(obj)


def content_hash(payload: Any) -> str:
    """Stable sha256 over a canonical JSON dump of ``payload``."""
    canonical = json.dumps(make_json_serializable(payload), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
