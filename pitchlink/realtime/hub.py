from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from loguru import logger

from pitchlink.schemas.enums import RealtimeEvent


@dataclass(frozen=True)
class ChannelEvent:
    name: str
    channel: str
    data: Dict[str, Any] = field(default_factory=dict)

    def as_frame(self) -> Dict[str, Any]:
        return {"event": self.name, "channel": self.channel, "data": self.data}


Callback = Callable[[ChannelEvent], None]


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


def conversation_channel(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


@dataclass(eq=False)
class Subscription:
    channel: str
    callback: Callback

    def deliver(self, event: ChannelEvent) -> None:
        self.callback(event)


class RealtimeNotifier:
    """
    Process-local fan-out to per-user and per-conversation channels.

    Delivery is at-most-once: there is no replay, and a subscriber that raises
    is logged and skipped without affecting the publisher or other subscribers.
    """

    def __init__(self) -> None:
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, channel: str, callback: Callback) -> Subscription:
        subscription = Subscription(channel=channel, callback=callback)
        with self._lock:
            self._subscriptions.setdefault(channel, []).append(subscription)
        return subscription

    def subscribe_user(self, user_id: str, callback: Callback) -> Subscription:
        return self.subscribe(user_channel(user_id), callback)

    def subscribe_conversation(self, conversation_id: str, callback: Callback) -> Subscription:
        return self.subscribe(conversation_channel(conversation_id), callback)

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(subscription.channel)
            if not subs:
                return
            try:
                subs.remove(subscription)
            except ValueError:
                return
            if not subs:
                self._subscriptions.pop(subscription.channel, None)

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(channel, []))

    def publish(self, channel: str, name: RealtimeEvent | str, data: Dict[str, Any]) -> int:
        event = ChannelEvent(name=RealtimeEvent(name).value, channel=channel, data=data)
        with self._lock:
            targets = list(self._subscriptions.get(channel, []))

        delivered = 0
        for subscription in targets:
            try:
                subscription.deliver(event)
                delivered += 1
            except Exception as e:
                logger.warning(f"Realtime delivery failed | channel={channel} event={event.name} error={e}")
        return delivered

    def emit_to_user(self, user_id: str, name: RealtimeEvent | str, data: Dict[str, Any]) -> int:
        return self.publish(user_channel(user_id), name, data)

    def emit_to_conversation(self, conversation_id: str, name: RealtimeEvent | str, data: Dict[str, Any]) -> int:
        return self.publish(conversation_channel(conversation_id), name, data)


# process-wide instance used by the HTTP and WebSocket surfaces
notifier = RealtimeNotifier()


def get_notifier() -> RealtimeNotifier:
    return notifier
