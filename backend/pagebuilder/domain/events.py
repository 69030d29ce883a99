from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class OpKind(str, Enum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    MOVE = "move"
    DUPLICATE = "duplicate"
    IMPORT = "import"
    RESTORE = "restore"


class NodeKind(str, Enum):
    PAGE = "page"
    SECTION = "section"
    BLOCK = "block"


@dataclass(frozen=True)
class ChangeEvent:
    node_id: str
    parent_id: Optional[str]
    op_kind: OpKind
    node_kind: NodeKind
    page_id: str
    # descendants dropped together with node_id by a cascading delete
    removed_ids: Tuple[str, ...] = ()

    def to_dict(self):
        return {
            "node_id": self.node_id,
            "parent_id": self.parent_id,
            "op_kind": self.op_kind.value,
            "node_kind": self.node_kind.value,
            "page_id": self.page_id,
            "removed_ids": list(self.removed_ids),
        }


Subscriber = Callable[[ChangeEvent], None]


class EventBus:
    """
    Synchronous fan-out of change events.

    A failing subscriber is logged and skipped; the mutation that produced
    the event has already been applied and is never rolled back from here.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Subscriber:
        self._subscribers.append(subscriber)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def publish(self, event: ChangeEvent) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception(
                    "Change subscriber %r failed for %s %s %s",
                    subscriber, event.op_kind.value, event.node_kind.value, event.node_id,
                )
