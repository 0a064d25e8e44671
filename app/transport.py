"""Outbound Telegram Bot API calls.

Thin wrapper over python-telegram-bot's Bot. Every failed call is counted,
logged and re-raised as TransportError so callers decide whether a failure
matters (admin routes) or is only worth a log line (webhook path).
"""
import logging
from typing import Awaitable, Optional, Sequence, TypeVar, Union

from telegram import Bot, InlineKeyboardMarkup, InlineQueryResult, InputMediaPhoto
from telegram.constants import MediaGroupLimit, ParseMode
from telegram.error import TelegramError

from app.errors import TransportError
from app.metrics import OUTBOUND_ERRORS

logger = logging.getLogger(__name__)

ChatId = Union[int, str]
T = TypeVar("T")


class TelegramTransport:
    """Messaging transport used by the update router and admin operations."""

    def __init__(self, bot: Bot):
        self.bot = bot

    @classmethod
    def from_token(cls, bot_token: str) -> "TelegramTransport":
        return cls(Bot(token=bot_token))

    async def initialize(self) -> None:
        await self.bot.initialize()

    async def shutdown(self) -> None:
        await self.bot.shutdown()

    async def _call(self, method: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except TelegramError as e:
            OUTBOUND_ERRORS.labels(method=method).inc()
            logger.error(f"Telegram {method} failed: {e}")
            raise TransportError(method, str(e)) from e

    async def send_search_results(self, query_id: str, results: Sequence[InlineQueryResult]) -> None:
        await self._call(
            "answerInlineQuery",
            self.bot.answer_inline_query(query_id, list(results)),
        )

    async def send_message(
        self,
        chat: ChatId,
        text: str,
        keyboard: Optional[InlineKeyboardMarkup] = None,
    ) -> int:
        message = await self._call(
            "sendMessage",
            self.bot.send_message(
                chat_id=chat,
                text=text,
                parse_mode=ParseMode.HTML,
                reply_markup=keyboard,
            ),
        )
        return message.message_id

    async def send_album(self, chat: ChatId, image_urls: Sequence[str]) -> None:
        """Send images as media groups; Telegram caps a group at 10 items."""
        step = MediaGroupLimit.MAX_MEDIA_LENGTH
        for start in range(0, len(image_urls), step):
            chunk = image_urls[start:start + step]
            if len(chunk) == 1:
                # A media group needs at least two items.
                await self._call("sendPhoto", self.bot.send_photo(chat_id=chat, photo=chunk[0]))
            else:
                await self._call(
                    "sendMediaGroup",
                    self.bot.send_media_group(
                        chat_id=chat,
                        media=[InputMediaPhoto(media=url) for url in chunk],
                    ),
                )

    async def update_keyboard(self, message_id: int, chat: ChatId, keyboard: InlineKeyboardMarkup) -> None:
        await self._call(
            "editMessageReplyMarkup",
            self.bot.edit_message_reply_markup(
                chat_id=chat,
                message_id=message_id,
                reply_markup=keyboard,
            ),
        )

    async def answer_callback(self, callback_id: str, text: Optional[str] = None) -> None:
        await self._call(
            "answerCallbackQuery",
            self.bot.answer_callback_query(callback_id, text=text),
        )
