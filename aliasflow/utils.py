from typing import Any, Optional

from aliasflow.monitor import AgentLogger, LogLevel


__all__ = ["AliasFlowError", "IRLoadError", "ConfigError", "make_json_serializable"]


class AliasFlowError(Exception):
    def __init__(self, message, logger: Optional[AgentLogger] = None):
        super().__init__(message)
        self.message = message
        if logger is not None:
            logger.log(message, level=LogLevel.ERROR)

    def dict(self) -> dict[str, str]:
        return {"type": self.__class__.__name__, "message": str(self.message)}


class IRLoadError(AliasFlowError):
    pass


class ConfigError(AliasFlowError):
    pass


def make_json_serializable(obj: Any) -> Any:
    if obj is None:
        return None
    elif isinstance(obj, (str, int, float, bool)):
        return obj
    elif isinstance(obj, (list, tuple, set, frozenset)):
        items = [make_json_serializable(item) for item in obj]
        return sorted(items, key=str) if isinstance(obj, (set, frozenset)) else items
    elif isinstance(obj, dict):
        return {str(k): make_json_serializable(v) for k, v in obj.items()}
    elif hasattr(obj, "to_dict"):
        return make_json_serializable(obj.to_dict())
    else:
        return str(obj)
