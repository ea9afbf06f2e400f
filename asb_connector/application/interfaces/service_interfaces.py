"""
Messaging interfaces implemented by the Service Bus infrastructure.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from shared.models.message import Message, MessageBatch, OutboundMessage


class MessageReceiverInterface(ABC):
    """Abstract base class for message receiver implementations."""

    @abstractmethod
    def receive(self, server_wait_time: Optional[int] = None) -> Optional[Message]:
        """Receive at most one message, or None when the wait time elapses."""
        pass

    @abstractmethod
    def receive_batch(self, max_message_count: int, server_wait_time: Optional[int] = None) -> MessageBatch:
        """Receive up to max_message_count messages."""
        pass

    @abstractmethod
    def complete(self, lock_token: str) -> None:
        """Complete the message issued with lock_token."""
        pass

    @abstractmethod
    def abandon(self, lock_token: str) -> None:
        """Abandon the message issued with lock_token."""
        pass

    @abstractmethod
    def dead_letter(self, lock_token: str, reason: Optional[str] = None, description: Optional[str] = None) -> None:
        """Move the message issued with lock_token to the dead-letter sub-queue."""
        pass

    @abstractmethod
    def defer(self, lock_token: str) -> None:
        """Defer the message issued with lock_token."""
        pass

    @abstractmethod
    def receive_deferred(self, sequence_number: int) -> Optional[Message]:
        """Receive a deferred message by its sequence number."""
        pass

    @abstractmethod
    def renew_lock(self, lock_token: str) -> datetime:
        """Renew the lock of the message issued with lock_token."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close any resources held by the receiver."""
        pass


class MessageSenderInterface(ABC):
    """Abstract base class for message sender implementations."""

    @abstractmethod
    def send(self, message: OutboundMessage) -> None:
        """Send a single message."""
        pass

    @abstractmethod
    def send_batch(self, messages: Sequence[OutboundMessage]) -> int:
        """Send messages in as few batches as possible and return how many were sent."""
        pass

    @abstractmethod
    def schedule(self, message: OutboundMessage, enqueue_time: datetime) -> List[int]:
        """Schedule a message and return its sequence numbers."""
        pass

    @abstractmethod
    def cancel_scheduled(self, sequence_numbers: Sequence[int]) -> None:
        """Cancel previously scheduled messages."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close any resources held by the sender."""
        pass
