"""Observers of limiting-state transitions."""

import itertools
from typing import Callable, Dict, Union

from burstlimit.core.logging import get_logger

logger = get_logger(__name__)

LimitingListener = Callable[[bool], None]
ListenerHandle = int


class ListenerRegistry:
    """Registry of callbacks notified when a limiter starts or stops limiting.

    Listeners are keyed by the handle returned from ``add``. They are called
    in registration order with ``True`` when limiting engages and ``False``
    when it is lifted. A failing listener is logged and skipped; it never
    interrupts dispatch or the remaining listeners.
    """

    def __init__(self):
        self._listeners: Dict[ListenerHandle, LimitingListener] = {}
        self._handles = itertools.count(1)

    def add(self, listener: LimitingListener) -> ListenerHandle:
        """Register a listener.

        Args:
            listener: Callable receiving the new limiting state

        Returns:
            Handle that can be passed to ``remove``
        """
        handle = next(self._handles)
        self._listeners[handle] = listener
        return handle

    def remove(self, listener: Union[ListenerHandle, LimitingListener]) -> bool:
        """Unregister a listener by handle or by the callable itself.

        When a callable was registered several times, the earliest
        registration is removed.

        Returns:
            True if a listener was removed
        """
        if isinstance(listener, int):
            return self._listeners.pop(listener, None) is not None
        for handle, registered in self._listeners.items():
            if registered == listener:
                del self._listeners[handle]
                return True
        return False

    def notify(self, limiting: bool) -> None:
        # Copy so listeners may unregister themselves while being notified
        for handle, listener in list(self._listeners.items()):
            try:
                listener(limiting)
            except Exception:
                logger.exception(
                    f"Rate limit listener {handle} failed handling limiting={limiting}"
                )

    def __len__(self) -> int:
        return len(self._listeners)
