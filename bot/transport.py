"""Telegram implementation of the messaging transport."""

from __future__ import annotations

import structlog
from telegram import Bot
from telegram.error import BadRequest, Forbidden, TelegramError

from bot.keyboards import schedule_keyboard
from relay.transport import DeliveryError, MessagingTransport

logger = structlog.get_logger(__name__)

UNREACHABLE_MARKERS = ("blocked", "chat not found", "user is deactivated")


def classify_telegram_error(error: TelegramError) -> DeliveryError:
    """Map a Telegram API error onto a permanent or transient DeliveryError."""
    message = str(error.message or error)
    if isinstance(error, Forbidden):
        return DeliveryError(message, permanent=True)
    if isinstance(error, BadRequest) and any(m in message.lower() for m in UNREACHABLE_MARKERS):
        return DeliveryError(message, permanent=True)
    return DeliveryError(message, permanent=False)


class TelegramTransport(MessagingTransport):
    """Sends schedule photos and texts through the Bot API."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_image_notification(self, chat_id: int, image_reference: str, caption: str) -> None:
        try:
            await self.bot.send_photo(
                chat_id=chat_id,
                photo=image_reference,
                caption=caption,
                reply_markup=schedule_keyboard(),
            )
        except TelegramError as e:
            raise classify_telegram_error(e) from e

    async def send_text_notification(self, chat_id: int, text: str) -> None:
        try:
            await self.bot.send_message(chat_id=chat_id, text=text)
        except TelegramError as e:
            raise classify_telegram_error(e) from e
