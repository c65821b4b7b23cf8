from collections import deque
from datetime import datetime
import logging
from typing import Any, Callable, Deque, Dict, List

from .models import Pet, PetMessage

logger = logging.getLogger(__name__)

PetListener = Callable[[Pet], None]
MessageListener = Callable[[PetMessage], None]


def _notify(listeners: list, payload):
    for listener in list(listeners):
        listener(payload)


def _unsubscriber(listeners: list, listener) -> Callable[[], None]:
    def unsubscribe():
        if listener in listeners:
            listeners.remove(listener)
    return unsubscribe


class PetStore:
    """
    Holds the one current Pet of a session.

    There is exactly one writer (the owning PetLogic); every update replaces
    the frozen snapshot and is pushed to listeners synchronously.
    """

    def __init__(self, pet: Pet):
        self._pet = pet
        self._listeners: List[PetListener] = []

    def get_snapshot(self) -> Pet:
        return self._pet

    def apply_update(self, partial: Dict[str, Any], now: datetime, interaction: bool = True) -> Pet:
        """
        Merge attribute changes into the snapshot.

        Args:
            partial: attribute -> new value, validated through the Pet model
            now: current time; stamps updated_at, and last_interaction for interactions
            interaction: False for updates that must not count as user activity

        Returns:
            the new snapshot
        """
        current = self._pet
        data = current.model_dump()
        data.update(partial)
        data["updated_at"] = max(now, current.updated_at)
        if interaction:
            data["last_interaction"] = max(now, current.last_interaction)
        self._pet = Pet.model_validate(data)
        _notify(self._listeners, self._pet)
        return self._pet

    def subscribe(self, listener: PetListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return _unsubscriber(self._listeners, listener)


class MessageLog:
    """Bounded FIFO of pet messages, most recent last."""

    def __init__(self, capacity: int = 5):
        if capacity < 1:
            raise ValueError("message log capacity must be positive")
        self.capacity = capacity
        self._entries: Deque[PetMessage] = deque(maxlen=capacity)
        self._listeners: List[MessageListener] = []

    def append(self, message: PetMessage) -> PetMessage:
        self._entries.append(message)
        logger.debug("pet says [%s] %s", message.emotion, message.text)
        _notify(self._listeners, message)
        return message

    def recent(self, n: int = 3) -> List[PetMessage]:
        if n <= 0:
            return []
        return list(self._entries)[-n:]

    def subscribe(self, listener: MessageListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return _unsubscriber(self._listeners, listener)

    def __iter__(self):
        return iter(list(self._entries))

    def __len__(self):
        return len(self._entries)
