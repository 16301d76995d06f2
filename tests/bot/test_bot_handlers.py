"""
Unit tests for the Telegram command, button and text handlers.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from telegram.ext import MessageHandler, filters

from bot.handlers import ScheduleBot
from relay.models import ChangeOutcome, CycleResult, CycleTrigger, DeliveryStatus
from relay.subscribers import SubscriberStoreError


def cycle(outcome=ChangeOutcome.UNCHANGED, error=None, requester_status=DeliveryStatus.DELIVERED):
    return CycleResult(
        cycle_id="c1",
        trigger=CycleTrigger.MANUAL,
        outcome=outcome,
        reference=None if error else "https://x/a.png",
        error=error,
        requester_status=None if error else requester_status,
    )


class TestScheduleBot:
    """Test cases for ScheduleBot handlers."""

    @pytest.fixture
    def schedule_bot(self, relay_config, mock_fetcher, subscriber_store):
        schedule_bot = ScheduleBot(relay_config, mock_fetcher, subscriber_store)
        schedule_bot.poll_service.refresh_for = AsyncMock(return_value=cycle())
        return schedule_bot

    @pytest.fixture
    def update(self):
        """Create a fake update from chat 100."""
        update = MagicMock()
        update.effective_chat.id = 100
        update.effective_message.reply_text = AsyncMock()
        update.effective_message.text = ""
        update.callback_query.answer = AsyncMock()
        return update

    def replies(self, update):
        return [c.args[0] for c in update.effective_message.reply_text.await_args_list]

    @pytest.mark.asyncio
    async def test_start_subscribes_and_refreshes(self, schedule_bot, update, subscriber_store):
        await schedule_bot._handle_start(update, MagicMock())

        assert 100 in subscriber_store
        assert self.replies(update) == [
            "Привіт! Я надсилатиму оновлення графіка, коли він зміниться.\n"
            "Натисни кнопку нижче або напиши “графік”."
        ]
        schedule_bot.poll_service.refresh_for.assert_awaited_once_with(
            100, trigger=CycleTrigger.START, note="Поточний графік."
        )

    @pytest.mark.asyncio
    async def test_start_reports_fetch_failure(self, schedule_bot, update):
        schedule_bot.poll_service.refresh_for.return_value = cycle(
            outcome=ChangeOutcome.FAILED, error="HTTP 502"
        )

        await schedule_bot._handle_start(update, MagicMock())

        assert self.replies(update)[-1] == "Не зміг отримати графік зараз. Помилка: HTTP 502"

    @pytest.mark.asyncio
    async def test_start_twice_keeps_single_subscription(self, schedule_bot, update, subscriber_store):
        await schedule_bot._handle_start(update, MagicMock())
        await schedule_bot._handle_start(update, MagicMock())

        assert subscriber_store.all() == frozenset({100})

    @pytest.mark.asyncio
    async def test_subscription_write_failure(self, schedule_bot, update, subscriber_store):
        with patch.object(subscriber_store, "add", side_effect=SubscriberStoreError("read-only")):
            await schedule_bot._handle_start(update, MagicMock())

        assert self.replies(update) == ["Не вдалося зберегти підписку, спробуй пізніше."]
        schedule_bot.poll_service.refresh_for.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_button_answers_and_refreshes(self, schedule_bot, update, subscriber_store):
        await schedule_bot._handle_button(update, MagicMock())

        update.callback_query.answer.assert_awaited_once()
        assert 100 in subscriber_store
        schedule_bot.poll_service.refresh_for.assert_awaited_once_with(
            100, trigger=CycleTrigger.BUTTON, note="Запит вручну."
        )
        assert self.replies(update) == []

    @pytest.mark.asyncio
    async def test_button_reports_failure(self, schedule_bot, update):
        schedule_bot.poll_service.refresh_for.return_value = cycle(
            outcome=ChangeOutcome.FAILED, error="timeout"
        )

        await schedule_bot._handle_button(update, MagicMock())

        assert self.replies(update) == ["Помилка, спробуй знову пізніше.\nДеталі: timeout"]

    @pytest.mark.asyncio
    async def test_refresh_command(self, schedule_bot, update):
        await schedule_bot._handle_refresh(update, MagicMock())

        schedule_bot.poll_service.refresh_for.assert_awaited_once_with(
            100, trigger=CycleTrigger.MANUAL, note="Запит вручну."
        )

    @pytest.mark.asyncio
    async def test_transient_delivery_to_requester_is_reported(self, schedule_bot, update):
        schedule_bot.poll_service.refresh_for.return_value = cycle(requester_status=DeliveryStatus.TRANSIENT)

        await schedule_bot._handle_refresh(update, MagicMock())

        assert self.replies(update) == [
            "Помилка, спробуй знову пізніше.\nДеталі: не вдалося надіслати зображення"
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["Графік", "що там зараз?", "SCHEDULE please"])
    async def test_keyword_text_refreshes(self, schedule_bot, update, text):
        update.effective_message.text = text

        await schedule_bot._handle_text(update, MagicMock())

        schedule_bot.poll_service.refresh_for.assert_awaited_once_with(
            100, trigger=CycleTrigger.TEXT, note="Запит текстом."
        )

    @pytest.mark.asyncio
    async def test_keyword_text_reports_failure(self, schedule_bot, update):
        update.effective_message.text = "графік"
        schedule_bot.poll_service.refresh_for.return_value = cycle(
            outcome=ChangeOutcome.FAILED, error="timeout"
        )

        await schedule_bot._handle_text(update, MagicMock())

        assert self.replies(update) == ["Помилка, спробуй знову.\nДеталі: timeout"]

    @pytest.mark.asyncio
    async def test_other_text_gets_hint_and_subscribes(self, schedule_bot, update, subscriber_store):
        update.effective_message.text = "привіт"

        await schedule_bot._handle_text(update, MagicMock())

        assert 100 in subscriber_store
        assert self.replies(update) == ["Напиши “графік” або натисни кнопку “Графік зараз”."]
        schedule_bot.poll_service.refresh_for.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_command_subscribes_and_gets_hint(self, schedule_bot, update, subscriber_store):
        update.effective_message.text = "/foo"

        await schedule_bot._handle_text(update, MagicMock())

        assert 100 in subscriber_store
        assert self.replies(update) == ["Напиши “графік” або натисни кнопку “Графік зараз”."]

    def test_unknown_commands_are_routed_to_text_handler(self, schedule_bot):
        handlers = schedule_bot.app.handlers[0]
        fallback = [h for h in handlers if isinstance(h, MessageHandler) and h.filters is filters.COMMAND]

        assert len(fallback) == 1
        assert fallback[0].callback == schedule_bot._handle_text
        assert handlers.index(fallback[0]) == len(handlers) - 1

    @pytest.mark.asyncio
    async def test_status(self, schedule_bot, update, subscriber_store):
        subscriber_store.add(100)
        subscriber_store.add(200)

        await schedule_bot._handle_status(update, MagicMock())

        assert self.replies(update) == [
            "Підписників: 2\n"
            "Останній URL: ще немає\n"
            "Сайт: https://poweron.example.com/shedule-off\n"
            "Інтервал: 60 сек"
        ]

    @pytest.mark.asyncio
    async def test_post_shutdown_closes_fetcher(self, schedule_bot, mock_fetcher):
        await schedule_bot._post_shutdown(schedule_bot.app)

        mock_fetcher.close.assert_awaited_once()
