"""
Keyed store from lock token to the SDK message that carries it.
"""
from typing import Dict, Optional

from azure.servicebus import ServiceBusReceivedMessage

from shared.utils.exceptions import LockTokenNotFoundException


class LockTokenRegistry:
    """
    Maps lock tokens handed to callers back to their received messages.

    Entries live until ``clear()``; a settled message stays registered so
    that settling it again reaches the SDK, which reports it as already
    settled. Nothing expires when a lock lapses server-side.
    """

    def __init__(self):
        self._messages: Dict[str, ServiceBusReceivedMessage] = {}

    def register(self, lock_token: Optional[str], message: ServiceBusReceivedMessage) -> None:
        # receive-and-delete messages carry no lock token
        if lock_token is None:
            return
        self._messages[str(lock_token)] = message

    def resolve(self, lock_token: str) -> ServiceBusReceivedMessage:
        message = self._messages.get(str(lock_token)) if lock_token is not None else None
        if message is None:
            raise LockTokenNotFoundException(lock_token)
        return message

    def clear(self) -> None:
        self._messages.clear()

    def __contains__(self, lock_token: str) -> bool:
        return str(lock_token) in self._messages

    def __len__(self) -> int:
        return len(self._messages)
