"""
Messaging transport contract used by the broadcast dispatcher.
"""

from abc import ABC, abstractmethod


class DeliveryError(Exception):
    """
    Delivery to one recipient failed.

    ``permanent`` marks recipients that will never be reachable again without
    re-subscribing (blocked bot, deleted chat). Everything else is transient.
    """

    def __init__(self, message: str, permanent: bool = False):
        super().__init__(message)
        self.permanent = permanent


class MessagingTransport(ABC):
    """Sends notifications to a single chat."""

    @abstractmethod
    async def send_image_notification(self, chat_id: int, image_reference: str, caption: str) -> None:
        """Send the schedule image with a caption; raise DeliveryError on failure."""

    @abstractmethod
    async def send_text_notification(self, chat_id: int, text: str) -> None:
        """Send a plain text message; raise DeliveryError on failure."""
