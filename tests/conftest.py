"""Shared fixtures: a handler wired to fake upstream and Telegram collaborators."""
import pytest

from app.config import BotConfig
from app.state import BotState
from app.telegram_handler import TelegramBotHandler
from rivnefish.models import FishKind, Report
from tests.fakes import CATALOG, CHANNEL_ID, FakeApi, FakeTransport, make_info


@pytest.fixture
def config():
    return BotConfig(bot_token="123:abc", channel=str(CHANNEL_ID))


@pytest.fixture
def api():
    return FakeApi(
        places=CATALOG,
        fish=[FishKind(1, "Короп"), FishKind(2, "Щука")],
        infos={p.id: make_info(p.id, p.name) for p in CATALOG},
        reports=[
            Report(
                id=500,
                place_id=1,
                title="Great catch",
                url="https://rivnefish.com/reports/500",
                description="Carp all day",
                fish_ids=(1, 2),
                photos=("https://img/1.jpg", "https://img/2.jpg"),
            ),
        ],
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def state():
    return BotState()


@pytest.fixture
def handler(config, state, api, transport):
    return TelegramBotHandler(config=config, state=state, api=api, transport=transport)
