"""Lifecycle events raised by the filter grid."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from reflex_filter_grid.models import FilterPredicateEntry

logger = logging.getLogger(__name__)

FILTER_BEGIN = "filter-begin"
FILTER_COMPLETE = "filter-complete"
FILTER_DIALOG_OPEN = "filter-dialog-open"
FILTER_DIALOG_CLOSE = "filter-dialog-close"

RequestType = Literal["filtering", "clear-filter", "filter-dialog"]


@dataclass
class FilterEventArgs:
    """Payload of every filter lifecycle event.

    ``columns`` is a snapshot of the canonical filter list at the time the
    event fired.
    """

    field: str | None
    columns: list[FilterPredicateEntry] = field(default_factory=list)
    request_type: RequestType = "filtering"
    kind: str | None = None


Listener = Callable[[FilterEventArgs], Any]


class GridEvents:
    """Minimal synchronous event hub (``on`` / ``off`` / ``trigger``)."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, name: str, listener: Listener) -> None:
        self._listeners.setdefault(name, []).append(listener)

    def off(self, name: str, listener: Listener | None = None) -> None:
        if listener is None:
            self._listeners.pop(name, None)
            return
        listeners = self._listeners.get(name, [])
        if listener in listeners:
            listeners.remove(listener)

    def trigger(self, name: str, args: FilterEventArgs) -> None:
        logger.debug("event %s field=%s entries=%d", name, args.field, len(args.columns))
        for listener in list(self._listeners.get(name, [])):
            listener(args)
