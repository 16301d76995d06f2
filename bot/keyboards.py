"""Inline keyboards attached to bot messages."""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

SCHEDULE_NOW = "SCHEDULE_NOW"


def schedule_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton("Графік зараз", callback_data=SCHEDULE_NOW)]])
