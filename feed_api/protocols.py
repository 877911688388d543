from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

MSG_FILL = "fill"
MSG_PLACE_ORDER = "placeOrder"


def make_message(msg_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": msg_type,
        "data": data,
    }


class Publisher(ABC):
    """Where decoded events go. ``broadcast`` must not block on subscribers."""

    @abstractmethod
    def broadcast(self, message: Dict[str, Any]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None
