"""Classification of inbound Telegram updates.

Each update maps to exactly one variant of RoutedUpdate. The checks in
classify() run in priority order; more specific shapes come before the
generic inline query shape.
"""
from dataclasses import dataclass
from typing import Optional, Union

from telegram import Chat, Update, User

# Callback data carried by the vote button under published reports.
VOTE_PAYLOAD = "u"


@dataclass(frozen=True)
class ChosenResult:
    result_id: str
    inline_message_id: str
    user: User


@dataclass(frozen=True)
class CallbackVote:
    callback_id: str
    user: User
    chat: Chat
    message_id: int


@dataclass(frozen=True)
class InlineSearch:
    query_id: str
    user: User
    query: str


@dataclass(frozen=True)
class Unsupported:
    update: Optional[Update]


RoutedUpdate = Union[ChosenResult, CallbackVote, InlineSearch, Unsupported]


def classify(update: Update) -> RoutedUpdate:
    """Pick the single handling path for an update."""
    chosen = update.chosen_inline_result
    if chosen is not None and chosen.inline_message_id:
        return ChosenResult(
            result_id=chosen.result_id,
            inline_message_id=chosen.inline_message_id,
            user=chosen.from_user,
        )

    callback = update.callback_query
    if callback is not None and callback.message is not None and callback.data == VOTE_PAYLOAD:
        return CallbackVote(
            callback_id=callback.id,
            user=callback.from_user,
            chat=callback.message.chat,
            message_id=callback.message.message_id,
        )

    inline = update.inline_query
    if inline is not None and update.message is None and callback is None:
        return InlineSearch(query_id=inline.id, user=inline.from_user, query=inline.query)

    return Unsupported(update=update)


def display_name(user: User) -> str:
    """Short human-readable user name for logs: @username or "First L"."""
    if user.username:
        return f"@{user.username}"
    if user.last_name:
        return f"{user.first_name} {user.last_name[0]}"
    return user.first_name
