"""Telegram webhook handler for the rivnefish bot.

This module is the bridge between Telegram, the shared BotState and the
rivnefish.com catalog. It receives updates from Telegram (via webhooks),
classifies each one into a single handling path, and runs it.

Architecture overview:
  Telegram Cloud  ──webhook POST──►  FastAPI (main.py)
                                        │
                                        ▼
                                  TelegramBotHandler.handle_webhook()
                                        │
                                   classify()
                                        │
              ┌───────────────┬─────────┴──────┬──────────────┐
              ▼               ▼                ▼              ▼
        ChosenResult     CallbackVote     InlineSearch    Unsupported
         (log only)      (vote toggle)    (search)        (log only)
                              │                │
                              ▼                ▼
                     BotState.toggle_vote  BotState.matching_ids
                              │            BotState.get_info_for ──► RfApi
                              ▼                │
                     update_keyboard      answerInlineQuery

Admin operations (reload, set_top, announce, publish, load/save state) are
also methods here; main.py exposes them as HTTP routes.

Key design decisions:
  - One RW lock guards all state (see app/state.py). Network calls are made
    only outside it.
  - A vote is committed before the keyboard update is sent. If Telegram
    rejects the update the vote still counts; the next toggle re-renders.
  - The webhook path never fails: transport errors and malformed payloads
    are logged and Telegram always gets an acknowledgement.
"""
import asyncio
import logging
import time
from typing import Any, Optional, Sequence

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    InlineQueryResultArticle,
    InputTextMessageContent,
    Update,
)
from telegram.constants import ParseMode

from rivnefish.client import RfApi
from rivnefish.constants import MORE_ON_WEBSITE
from rivnefish.models import PlaceInfo
from rivnefish.render import place_text, report_text

from app.config import BotConfig
from app.errors import ReportNotFound, TransportError
from app.metrics import SEARCH_LATENCY, UPDATE_TOTAL, VOTE_TOTAL
from app.snapshot import VoteSnapshot
from app.state import BotState, VoteRecord
from app.transport import ChatId, TelegramTransport
from app.updates import (
    VOTE_PAYLOAD,
    CallbackVote,
    ChosenResult,
    InlineSearch,
    RoutedUpdate,
    Unsupported,
    classify,
    display_name,
)

logger = logging.getLogger(__name__)

# Shown when someone votes under a message the bot does not track (never
# registered, or the vote board was replaced since).
VOTE_NOT_FOUND_TEXT = "Голосування для цього звіту недоступне"


def vote_keyboard(record: VoteRecord) -> InlineKeyboardMarkup:
    """Keyboard under a published report: website link + vote counter."""
    return InlineKeyboardMarkup([[
        InlineKeyboardButton(MORE_ON_WEBSITE, url=record.target_url),
        InlineKeyboardButton(f"👍 {record.count}", callback_data=VOTE_PAYLOAD),
    ]])


def place_result(place: PlaceInfo) -> InlineQueryResultArticle:
    """Inline query result for one place."""
    return InlineQueryResultArticle(
        id=f"iqid_{place.id}",
        title=place.name,
        description=place.desc_short,
        thumbnail_url=place.thumbnail or None,
        input_message_content=InputTextMessageContent(
            place_text(place),
            parse_mode=ParseMode.HTML,
        ),
        reply_markup=InlineKeyboardMarkup([[
            InlineKeyboardButton(MORE_ON_WEBSITE, url=place.url),
        ]]),
    )


class TelegramBotHandler:
    """Routes webhook updates and runs admin operations against BotState."""

    def __init__(
        self,
        config: BotConfig,
        state: BotState,
        api: RfApi,
        transport: TelegramTransport,
    ):
        """Store collaborators.

        Args:
            config: Immutable bot configuration (channel, feature flags).
            state: Shared BotState (catalog, place cache, vote board).
            api: rivnefish.com catalog client.
            transport: Outbound Telegram calls.
        """
        self.config = config
        self.state = state
        self.api = api
        self.transport = transport

    async def initialize(self):
        await self.transport.initialize()

    async def shutdown(self):
        await self.transport.shutdown()
        await self.api.aclose()

    # ------------------------------------------------------------------
    # Webhook entry point (called by main.py's FastAPI route)
    # ------------------------------------------------------------------

    async def handle_webhook(self, update_data: Any, raw_body: str = "") -> None:
        """Handle an incoming webhook POST from Telegram.

        Never raises: every outcome is acknowledged to Telegram, failures are
        only logged.

        Args:
            update_data: Decoded JSON body of the webhook request.
            raw_body: Original request text, kept for diagnostics.
        """
        try:
            update = Update.de_json(update_data, self.transport.bot)
        except Exception as e:
            UPDATE_TOTAL.labels(kind="malformed").inc()
            logger.error(f"Could not parse Telegram update: {e}; received: {raw_body}")
            return
        if update is None:
            UPDATE_TOTAL.labels(kind="malformed").inc()
            logger.error(f"Empty Telegram update; received: {raw_body}")
            return

        routed = classify(update)
        try:
            await self.dispatch(routed, raw_body)
        except TransportError as e:
            # Already counted and logged by the transport.
            logger.warning(
                f"Update {update.update_id} handled with transport error: {e}",
                extra={"update_id": update.update_id},
            )

    async def dispatch(self, routed: RoutedUpdate, raw_body: str = "") -> None:
        """Run the handling path for a classified update."""
        if isinstance(routed, ChosenResult):
            UPDATE_TOTAL.labels(kind="chosen_result").inc()
            logger.info(
                f"Chosen inline result {routed.result_id}, inline message id: "
                f"{routed.inline_message_id}, from {display_name(routed.user)}"
            )
        elif isinstance(routed, CallbackVote):
            UPDATE_TOTAL.labels(kind="callback_vote").inc()
            await self.handle_vote(routed)
        elif isinstance(routed, InlineSearch):
            UPDATE_TOTAL.labels(kind="inline_query").inc()
            await self.handle_inline_query(routed)
        elif isinstance(routed, Unsupported):
            UPDATE_TOTAL.labels(kind="unsupported").inc()
            update_id = routed.update.update_id if routed.update else None
            logger.warning(
                f"Received unsupported update {update_id}", extra={"update_id": update_id}
            )
            logger.debug(f"Original update text: {raw_body}", extra={"update_id": update_id})

    # ------------------------------------------------------------------
    # Inline search
    # ------------------------------------------------------------------

    async def search(self, query: str) -> list[PlaceInfo]:
        """Places for an inline query, in candidate order, unresolved ids dropped."""
        ids = await self.state.matching_ids(query)
        infos = await asyncio.gather(
            *(self.state.get_info_for(place_id, self.api.fetch_place_info) for place_id in ids)
        )
        return [info for info in infos if info is not None]

    async def handle_inline_query(self, routed: InlineSearch) -> None:
        start_time = time.monotonic()
        places = await self.search(routed.query)
        results = [place_result(place) for place in places]
        elapsed = time.monotonic() - start_time
        SEARCH_LATENCY.observe(elapsed)

        logger.info(
            f"IQ id {routed.query_id}, from user '{display_name(routed.user)}' "
            f"({routed.user.id}), query: `{routed.query}`, "
            f"{len(results)} results, took {elapsed * 1000:.0f}ms"
        )
        await self.transport.send_search_results(routed.query_id, results)

    # ------------------------------------------------------------------
    # Report votes
    # ------------------------------------------------------------------

    async def handle_vote(self, routed: CallbackVote) -> None:
        """Toggle a vote under a published report and refresh its counter."""
        if not self.config.is_channel(routed.chat.id, routed.chat.username):
            VOTE_TOTAL.labels(outcome="foreign_chat").inc()
            logger.info(
                f"Ignoring vote callback from chat {routed.chat.id}, "
                f"not the publish channel"
            )
            return

        record = await self.state.toggle_vote(routed.message_id, routed.user.id)
        if record is None:
            VOTE_TOTAL.labels(outcome="not_found").inc()
            logger.warning(
                f"Vote from {routed.user.id} on untracked message {routed.message_id}",
                extra={"message_id": routed.message_id},
            )
            await self.transport.answer_callback(routed.callback_id, VOTE_NOT_FOUND_TEXT)
            return

        cast = routed.user.id in record.voters
        VOTE_TOTAL.labels(outcome="cast" if cast else "undone").inc()
        logger.info(
            f"User {display_name(routed.user)} ({routed.user.id}) "
            f"{'voted for' if cast else 'withdrew vote from'} message "
            f"{routed.message_id}, now {record.count} votes",
            extra={"message_id": routed.message_id},
        )

        await self.transport.answer_callback(routed.callback_id)
        await self.transport.update_keyboard(
            routed.message_id, routed.chat.id, vote_keyboard(record)
        )

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    async def reload(self) -> int:
        """Refetch the place and fish catalogs and drop cached place info."""
        places, fish = await asyncio.gather(
            self.api.fetch_all_places(),
            self.api.fetch_all_fish(),
        )
        if not places:
            logger.warning("Upstream returned no places, catalog will be empty")
        await self.state.reload(places, fish)
        return len(places)

    async def set_top(self, ids: Sequence[int]) -> int:
        return await self.state.set_top(ids)

    async def announce(
        self,
        text: str,
        images: Sequence[str] = (),
        chat: Optional[ChatId] = None,
    ) -> None:
        """Send arbitrary text and/or images, to the channel by default."""
        target = chat or self.config.channel
        if images:
            await self.transport.send_album(target, list(images))
        if text:
            await self.transport.send_message(target, text)
        logger.info(f"Announced to {target}: {len(text)} chars, {len(images)} images")

    async def publish(self, report_id: int) -> int:
        """Post a fishing report to the channel and start tracking its votes.

        Flow:
          1. Fetch the report (paged upstream lookup).
          2. Resolve its place through the place info cache.
          3. Optionally send the report photos as an album.
          4. Send the text with a zero-vote keyboard.
          5. Register the returned message id on the vote board.

        Raises:
            ReportNotFound: the report could not be fetched.
            TransportError: Telegram rejected a send; nothing is registered.
        """
        report = await self.api.fetch_report(report_id)
        if report is None:
            raise ReportNotFound(report_id)

        place = await self.state.get_info_for(report.place_id, self.api.fetch_place_info)
        fish = await self.state.fish_kinds()
        text = report_text(report, place, fish)
        channel = self.config.channel

        try:
            if self.config.publish_photos and report.photos:
                await self.transport.send_album(channel, list(report.photos))
            message_id = await self.transport.send_message(
                channel, text, vote_keyboard(VoteRecord(target_url=report.url))
            )
        except TransportError:
            logger.error(
                f"Failed to publish report {report_id} to {channel}",
                extra={"report_id": report_id},
            )
            raise

        record = await self.state.register_report(message_id, report.url)
        logger.info(
            f"Published report {report_id} to {channel} as message {message_id} "
            f"({record.count} votes)",
            extra={"report_id": report_id, "message_id": message_id},
        )
        return message_id

    async def load_state(self, snapshot: VoteSnapshot) -> int:
        records = snapshot.to_records()
        await self.state.load_votes(records)
        return len(records)

    async def save_state(self) -> VoteSnapshot:
        return VoteSnapshot.from_records(await self.state.snapshot_votes())
