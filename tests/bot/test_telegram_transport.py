"""
Unit tests for the Telegram transport and error classification.
"""

from unittest.mock import AsyncMock

import pytest
from telegram import InlineKeyboardMarkup
from telegram.error import BadRequest, Forbidden, NetworkError, RetryAfter, TimedOut

from bot.keyboards import SCHEDULE_NOW
from bot.transport import TelegramTransport, classify_telegram_error
from relay.transport import DeliveryError


class TestClassifyTelegramError:
    """Test cases for mapping Telegram errors to delivery failures."""

    @pytest.mark.parametrize("error", [
        Forbidden("Forbidden: bot was blocked by the user"),
        Forbidden("Forbidden: bot was kicked from the group chat"),
        BadRequest("Bad Request: chat not found"),
        BadRequest("Chat not found"),
        BadRequest("Forbidden: user is deactivated"),
    ])
    def test_permanent_errors(self, error):
        assert classify_telegram_error(error).permanent is True

    @pytest.mark.parametrize("error", [
        BadRequest("Bad Request: wrong file identifier/http url specified"),
        NetworkError("Connection reset by peer"),
        TimedOut(),
        RetryAfter(5),
    ])
    def test_transient_errors(self, error):
        assert classify_telegram_error(error).permanent is False

    def test_message_is_kept(self):
        error = classify_telegram_error(Forbidden("Forbidden: bot was blocked by the user"))

        assert "blocked" in str(error)


class TestTelegramTransport:
    """Test cases for TelegramTransport class."""

    @pytest.fixture
    def bot(self):
        return AsyncMock()

    @pytest.fixture
    def transport(self, bot):
        return TelegramTransport(bot)

    @pytest.mark.asyncio
    async def test_send_image_notification(self, transport, bot):
        await transport.send_image_notification(100, "https://x/a.png", "Оновлено: 10.01.2025 12:00:00")

        kwargs = bot.send_photo.await_args.kwargs
        assert kwargs["chat_id"] == 100
        assert kwargs["photo"] == "https://x/a.png"
        assert kwargs["caption"] == "Оновлено: 10.01.2025 12:00:00"
        assert isinstance(kwargs["reply_markup"], InlineKeyboardMarkup)
        assert kwargs["reply_markup"].inline_keyboard[0][0].callback_data == SCHEDULE_NOW

    @pytest.mark.asyncio
    async def test_send_text_notification(self, transport, bot):
        await transport.send_text_notification(100, "Помилка")

        bot.send_message.assert_awaited_once_with(chat_id=100, text="Помилка")

    @pytest.mark.asyncio
    async def test_blocked_chat_raises_permanent(self, transport, bot):
        bot.send_photo.side_effect = Forbidden("Forbidden: bot was blocked by the user")

        with pytest.raises(DeliveryError) as exc_info:
            await transport.send_image_notification(100, "https://x/a.png", "caption")

        assert exc_info.value.permanent is True

    @pytest.mark.asyncio
    async def test_network_error_raises_transient(self, transport, bot):
        bot.send_message.side_effect = NetworkError("Connection reset by peer")

        with pytest.raises(DeliveryError) as exc_info:
            await transport.send_text_notification(100, "text")

        assert exc_info.value.permanent is False
