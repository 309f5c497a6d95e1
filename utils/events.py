import logging
from collections import defaultdict
from typing import Callable, DefaultDict, List, Type

logger = logging.getLogger(__name__)


class EventBus:
    """
    In-process publish/subscribe.

    Handlers run one after the other in subscription order. A handler that
    raises is logged and skipped; the publisher and the other handlers
    never see the exception.
    """

    def __init__(self):
        self._handlers: DefaultDict[type, List[Callable]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: Callable) -> Callable:
        self._handlers[event_type].append(handler)
        return handler

    def publish(self, event) -> List[str]:
        failed = []
        for handler in list(self._handlers[type(event)]):
            name = getattr(handler, "__name__", repr(handler))
            try:
                handler(event)
            except Exception:
                logger.exception("Handler %s failed for %s", name, type(event).__name__)
                failed.append(name)
        return failed
