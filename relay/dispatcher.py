"""
Broadcast delivery to subscribers.

This module provides:
- Sequential delivery of the schedule image or a text to every subscriber
- Per-recipient failure isolation
- Removal of permanently unreachable subscribers
"""

from typing import Awaitable, Callable, Iterable, Optional

import structlog

from relay.messages import schedule_caption
from relay.models import BroadcastResult, DeliveryStatus
from relay.subscribers import SubscriberStore, SubscriberStoreError
from relay.transport import DeliveryError, MessagingTransport

logger = structlog.get_logger(__name__)


class BroadcastDispatcher:
    """Delivers notifications to every current subscriber, one at a time."""

    def __init__(self, store: SubscriberStore, transport: MessagingTransport):
        """
        Initialize broadcast dispatcher.

        Args:
            store: Subscriber store (read, and updated on permanent failures)
            transport: Messaging transport used for delivery
        """
        self.store = store
        self.transport = transport
        self.logger = logger.bind(component="broadcast_dispatcher")

    async def broadcast_schedule(
        self,
        reference: str,
        caption_note: Optional[str] = None,
        exclude: Iterable[int] = ()
    ) -> BroadcastResult:
        """
        Send the schedule image to every subscriber.

        Args:
            reference: Schedule image URL
            caption_note: Optional extra line for the caption
            exclude: Chat ids to skip (e.g. a requester served separately)
        """
        caption = schedule_caption(caption_note)

        async def send(chat_id: int) -> None:
            await self.transport.send_image_notification(chat_id, reference, caption)

        return await self._broadcast(send, exclude, kind="schedule")

    async def broadcast_text(self, text: str) -> BroadcastResult:
        """Send a plain text message to every subscriber."""
        async def send(chat_id: int) -> None:
            await self.transport.send_text_notification(chat_id, text)

        return await self._broadcast(send, (), kind="text")

    async def deliver_schedule(self, chat_id: int, reference: str, caption_note: Optional[str] = None) -> DeliveryStatus:
        """Send the schedule image to one chat with the same failure handling."""
        caption = schedule_caption(caption_note)

        async def send(target: int) -> None:
            await self.transport.send_image_notification(target, reference, caption)

        return await self._deliver(send, chat_id)

    async def _broadcast(
        self,
        send: Callable[[int], Awaitable[None]],
        exclude: Iterable[int],
        kind: str
    ) -> BroadcastResult:
        excluded = set(exclude)
        recipients = sorted(chat_id for chat_id in self.store.all() if chat_id not in excluded)
        result = BroadcastResult(total=len(recipients))

        for chat_id in recipients:
            status = await self._deliver(send, chat_id)
            if status == DeliveryStatus.DELIVERED:
                result.delivered += 1
            elif status == DeliveryStatus.UNREACHABLE:
                result.removed.append(chat_id)
            else:
                result.failed += 1

        self.logger.info(
            "Broadcast finished",
            kind=kind,
            total=result.total,
            delivered=result.delivered,
            failed=result.failed,
            removed=len(result.removed)
        )
        return result

    async def _deliver(self, send: Callable[[int], Awaitable[None]], chat_id: int) -> DeliveryStatus:
        try:
            await send(chat_id)
            return DeliveryStatus.DELIVERED
        except DeliveryError as e:
            if not e.permanent:
                self.logger.warning("Delivery failed, subscriber kept", chat_id=chat_id, error=str(e))
                return DeliveryStatus.TRANSIENT
            self.logger.warning("Subscriber unreachable, removing", chat_id=chat_id, error=str(e))
        except Exception as e:
            self.logger.error("Unexpected delivery error, subscriber kept", chat_id=chat_id, error=str(e))
            return DeliveryStatus.TRANSIENT

        try:
            self.store.remove(chat_id)
        except SubscriberStoreError as e:
            self.logger.error("Failed to remove unreachable subscriber", chat_id=chat_id, error=str(e))
        return DeliveryStatus.UNREACHABLE
