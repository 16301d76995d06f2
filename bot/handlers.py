"""Telegram bot implementation."""

from __future__ import annotations

from typing import Optional

import structlog
from telegram import BotCommand, Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from bot.keyboards import SCHEDULE_NOW, schedule_keyboard
from bot.transport import TelegramTransport
from fetchers.base import ScheduleFetcher
from relay import messages
from relay.models import CycleTrigger, DeliveryStatus
from relay.poll_service import PollService
from relay.schedule_state import ScheduleState
from relay.subscribers import SubscriberStore, SubscriberStoreError
from utilities.config import RelayConfig

logger = structlog.get_logger(__name__)

BOT_COMMANDS = [
    BotCommand("start", "Підписатися і отримати графік"),
    BotCommand("refresh", "Графік зараз"),
    BotCommand("status", "Стан бота"),
]


class ScheduleBot:
    """Telegram bot that subscribes chats and serves the outage schedule."""

    def __init__(
        self,
        config: RelayConfig,
        fetcher: ScheduleFetcher,
        store: SubscriberStore,
        state: Optional[ScheduleState] = None,
    ):
        self.config = config
        self.fetcher = fetcher
        self.store = store
        self.keywords = config.get_keywords()
        self.app = (
            Application.builder()
            .token(config.bot_token)
            .concurrent_updates(True)
            .post_init(self._post_init)
            .post_shutdown(self._post_shutdown)
            .build()
        )
        self.transport = TelegramTransport(self.app.bot)
        self.poll_service = PollService(config, fetcher, store, self.transport, state)
        self._setup_handlers()

    def _setup_handlers(self):
        """Register message handlers."""
        self.app.add_handler(CommandHandler("start", self._handle_start))
        self.app.add_handler(CommandHandler("status", self._handle_status))
        self.app.add_handler(CommandHandler("refresh", self._handle_refresh))
        self.app.add_handler(CallbackQueryHandler(self._handle_button, pattern=f"^{SCHEDULE_NOW}$"))
        self.app.add_handler(
            MessageHandler(
                filters.TEXT & ~filters.COMMAND,
                self._handle_text,
            )
        )
        # Unknown commands still subscribe and get the hint
        self.app.add_handler(MessageHandler(filters.COMMAND, self._handle_text))
        self.app.add_error_handler(self._handle_error)

    async def _post_init(self, application: Application) -> None:
        try:
            await application.bot.set_my_commands(BOT_COMMANDS)
        except TelegramError as e:
            logger.warning("Failed to register bot commands", error=str(e))
        self.poll_service.start()

    async def _post_shutdown(self, application: Application) -> None:
        self.poll_service.stop()
        await self.fetcher.close()

    def run(self) -> None:
        """Start polling Telegram until interrupted."""
        logger.info("Bot started", target_url=self.config.target_url)
        self.app.run_polling(allowed_updates=Update.ALL_TYPES)

    async def _handle_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle the /start command: subscribe and send the current schedule."""
        chat_id = update.effective_chat.id
        if not await self._subscribe(update, chat_id):
            return

        await update.effective_message.reply_text(messages.START_TEXT, reply_markup=schedule_keyboard())
        await self._refresh(
            update, chat_id, CycleTrigger.START, messages.NOTE_CURRENT, messages.START_FAILURE_TEMPLATE
        )

    async def _handle_status(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        status = self.poll_service.get_status()
        text = messages.status_text(
            status['subscribers'],
            status['last_reference'],
            status['target_url'],
            status['interval_seconds'],
        )
        await update.effective_message.reply_text(text, reply_markup=schedule_keyboard())

    async def _handle_refresh(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        chat_id = update.effective_chat.id
        if not await self._subscribe(update, chat_id):
            return
        await self._refresh(
            update, chat_id, CycleTrigger.MANUAL, messages.NOTE_MANUAL, messages.MANUAL_FAILURE_TEMPLATE
        )

    async def _handle_button(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle the "Графік зараз" inline button."""
        await update.callback_query.answer()
        chat_id = update.effective_chat.id
        if not await self._subscribe(update, chat_id):
            return
        await self._refresh(
            update, chat_id, CycleTrigger.BUTTON, messages.NOTE_MANUAL, messages.MANUAL_FAILURE_TEMPLATE
        )

    async def _handle_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Any text subscribes; schedule keywords also trigger a refresh."""
        message = update.effective_message
        if not message:
            return

        chat_id = update.effective_chat.id
        if not await self._subscribe(update, chat_id):
            return

        text = (message.text or "").lower()
        if any(keyword in text for keyword in self.keywords):
            await self._refresh(
                update, chat_id, CycleTrigger.TEXT, messages.NOTE_TEXT, messages.TEXT_FAILURE_TEMPLATE
            )
        else:
            await message.reply_text(messages.HINT_TEXT, reply_markup=schedule_keyboard())

    async def _handle_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        logger.error("Telegram handler error", error=str(context.error), exc_info=context.error)

    async def _subscribe(self, update: Update, chat_id: int) -> bool:
        try:
            self.store.add(chat_id)
            return True
        except SubscriberStoreError as e:
            logger.error("Subscription not saved", chat_id=chat_id, error=str(e))
            await update.effective_message.reply_text(messages.SUBSCRIBE_FAILED_TEXT)
            return False

    async def _refresh(
        self,
        update: Update,
        chat_id: int,
        trigger: CycleTrigger,
        note: str,
        failure_template: str,
    ) -> None:
        result = await self.poll_service.refresh_for(chat_id, trigger=trigger, note=note)

        if not result.success:
            cause = result.error
        elif result.requester_status == DeliveryStatus.TRANSIENT:
            cause = "не вдалося надіслати зображення"
        else:
            return

        await update.effective_message.reply_text(
            failure_template.format(cause=cause),
            reply_markup=schedule_keyboard(),
        )
