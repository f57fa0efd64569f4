"""In-process event dispatcher for inbound channel events.

Handlers are called synchronously, in registration order, from inside the
socket's receive callback. Publishing here never touches the network; the
only way out is ConnectionSession.send.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable
from uuid import uuid4

from bracket_live.utils.errors import ParseError
from bracket_live.ws.events import Event, EventType, UnknownEvent, parse_event
from bracket_live.ws.messages import MessageEnvelope

logger = logging.getLogger(__name__)

EventHandler = Callable[[Event], None]


@dataclass
class Subscription:
    """Event subscription metadata."""

    subscription_id: str
    event_type: EventType
    handler: EventHandler


class EventDispatcher:
    """Typed subscribe/unsubscribe/publish registry."""

    def __init__(self) -> None:
        self._handlers_by_type: dict[EventType, list[Subscription]] = {}

    def subscribe(self, event_type: EventType | str, handler: EventHandler) -> Callable[[], None]:
        """Register handler for event_type.

        Returns:
            A callable that removes this registration; calling it again is a no-op.

        Raises:
            ValueError: event_type is not a known EventType
        """
        subscription = Subscription(
            subscription_id=str(uuid4()),
            event_type=EventType(event_type),
            handler=handler,
        )
        self._handlers_by_type.setdefault(subscription.event_type, []).append(subscription)

        def unsubscribe() -> None:
            self._remove(subscription)

        return unsubscribe

    def _remove(self, subscription: Subscription) -> None:
        subscriptions = self._handlers_by_type.get(subscription.event_type)
        if not subscriptions or subscription not in subscriptions:
            return
        subscriptions.remove(subscription)
        if not subscriptions:
            del self._handlers_by_type[subscription.event_type]

    def handler_count(self, event_type: EventType | str) -> int:
        try:
            return len(self._handlers_by_type.get(EventType(event_type), []))
        except ValueError:
            return 0

    def dispatch(self, event: Event) -> int:
        """Deliver event to its handlers.

        The handler list is fixed when dispatch starts. A failing handler is
        logged and the rest still run.

        Returns:
            Number of handlers invoked
        """
        if isinstance(event, UnknownEvent):
            logger.debug(f"No handlers for unknown event type: {event.type}")
            return 0

        subscriptions = tuple(self._handlers_by_type.get(event.event_type, ()))
        for subscription in subscriptions:
            try:
                subscription.handler(event)
            except Exception:
                logger.exception(
                    f"Handler {subscription.subscription_id} failed for {event.event_type.value}"
                )
        return len(subscriptions)

    def dispatch_envelope(self, envelope: MessageEnvelope) -> int:
        """Parse and deliver an inbound envelope; malformed payloads are dropped."""
        try:
            event = parse_event(envelope)
        except ParseError as e:
            logger.warning(f"Dropping malformed {envelope.type} event: {e.message}")
            return 0
        return self.dispatch(event)

    def publish(self, event_type: EventType | str, data: Any = None) -> int:
        """Deliver an event to local handlers only."""
        return self.dispatch_envelope(MessageEnvelope.create(event_type, data))

    def clear(self) -> None:
        self._handlers_by_type.clear()
