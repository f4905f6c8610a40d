from typing import Type, Callable, List, Dict, Any, Optional
from hbwatch.domain.events import Event

class EventBus:
    """Synchronous event bus owned by the dispatcher thread.

    Subscribers registered for a base event class also receive its subclasses,
    e.g. a JobEvent subscriber sees JobStarted and JobCompleted.
    """

    def __init__(self):
        self._subscribers: Dict[Type[Event], List[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: Type[Event], callback: Optional[Callable[[Any], None]] = None):
        """Subscribes a callback to an event type. Can be used as a decorator."""
        if callback is None:
            def decorator(func: Callable[[Any], None]):
                self.subscribe(event_type, func)
                return func
            return decorator

        self._subscribers.setdefault(event_type, []).append(callback)
        return callback

    def unsubscribe(self, event_type: Type[Event], callback: Callable[[Any], None]) -> bool:
        callbacks = self._subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)
            return True
        return False

    def publish(self, event: Event):
        """Delivers the event to subscribers of its class and of its Event bases."""
        for event_type in type(event).__mro__:
            if not (isinstance(event_type, type) and issubclass(event_type, Event)):
                continue
            for callback in list(self._subscribers.get(event_type, ())):
                callback(event)
