"""Immutable bot configuration read from the environment."""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from rivnefish.constants import DEFAULT_API_URL

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}


def _read_bool_env(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in TRUE_VALUES


@dataclass(frozen=True)
class BotConfig:
    """Process-wide settings, built once at startup and passed explicitly."""
    bot_name: str = "@"
    bot_token: str = ""
    # Publish channel: numeric chat id or "@username".
    channel: str = ""
    listen_addr: str = "localhost:2358"
    listen_path: str = "/bot"
    publish_photos: bool = False
    state_file: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    webhook_rate_limit: str = "120/minute"

    @property
    def host(self) -> str:
        host, _, _port = self.listen_addr.rpartition(":")
        return host or "localhost"

    @property
    def port(self) -> int:
        _host, _, port = self.listen_addr.rpartition(":")
        try:
            return int(port)
        except ValueError:
            logger.warning(f"Invalid port in listen address {self.listen_addr!r}, using 2358")
            return 2358

    def is_channel(self, chat_id: int, username: Optional[str]) -> bool:
        """Check whether a chat is the configured publish channel."""
        if not self.channel:
            return False
        if self.channel.startswith("@"):
            return bool(username) and self.channel[1:].lower() == username.lower()
        return self.channel == str(chat_id)


def load_config() -> BotConfig:
    """Build BotConfig from RVFISH_* environment variables."""
    return BotConfig(
        bot_name=os.environ.get("RVFISH_BOTNAME", "@"),
        bot_token=os.environ.get("RVFISH_BOTTOKEN", ""),
        channel=os.environ.get("RVFISH_CHANNEL", ""),
        listen_addr=os.environ.get("RVFISH_LISTENADDR", "localhost:2358"),
        listen_path=os.environ.get("RVFISH_LISTENPATH", "/bot"),
        publish_photos=_read_bool_env("RVFISH_PUBLISH_PHOTOS"),
        state_file=os.environ.get("RVFISH_STATEFILE") or None,
        api_url=os.environ.get("RVFISH_API_URL", DEFAULT_API_URL),
        webhook_rate_limit=os.environ.get("WEBHOOK_RATE_LIMIT", "120/minute"),
    )
