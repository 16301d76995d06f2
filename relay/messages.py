"""User-facing texts."""

from datetime import datetime
from typing import Optional

from relay.schedule_state import human_timestamp

START_TEXT = (
    "Привіт! Я надсилатиму оновлення графіка, коли він зміниться.\n"
    "Натисни кнопку нижче або напиши “графік”."
)
HINT_TEXT = "Напиши “графік” або натисни кнопку “Графік зараз”."
SUBSCRIBE_FAILED_TEXT = "Не вдалося зберегти підписку, спробуй пізніше."

NOTE_CURRENT = "Поточний графік."
NOTE_MANUAL = "Запит вручну."
NOTE_TEXT = "Запит текстом."

START_FAILURE_TEMPLATE = "Не зміг отримати графік зараз. Помилка: {cause}"
MANUAL_FAILURE_TEMPLATE = "Помилка, спробуй знову пізніше.\nДеталі: {cause}"
TEXT_FAILURE_TEMPLATE = "Помилка, спробуй знову.\nДеталі: {cause}"


def schedule_caption(note: Optional[str] = None, moment: Optional[datetime] = None) -> str:
    caption = f"Оновлено: {human_timestamp(moment)}"
    if note:
        caption += f"\n{note}"
    return caption


def check_error_text(cause: str) -> str:
    """Text broadcast to subscribers when a background check fails."""
    return f"Помилка при перевірці сайту, спробую знову.\nДеталі: {cause}"


def status_text(subscribers: int, last_reference: Optional[str], target_url: str, interval_seconds: float) -> str:
    return (
        f"Підписників: {subscribers}\n"
        f"Останній URL: {last_reference or 'ще немає'}\n"
        f"Сайт: {target_url}\n"
        f"Інтервал: {int(interval_seconds + 0.5)} сек"
    )
