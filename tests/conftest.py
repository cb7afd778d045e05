import asyncio
from pathlib import Path

import pytest

from nature_brawl.core.battle import (
    BattleState,
    GamePhase,
    Move,
    Participant,
    ScriptedRandomSource,
)
from nature_brawl.core.broadcaster import BattleBroadcaster
from nature_brawl.core.config_manager import ConfigManager
from nature_brawl.core.fighter import FighterFactory
from nature_brawl.database import Database
from nature_brawl.handlers import BrawlHandlers

DEFAULT_DATA_PATH = Path(__file__).resolve().parent.parent / "nature_brawl" / "data"


def make_lion(**overrides) -> Participant:
    """挑战者：速度70、攻击75，招式消耗20能量、威力25、暴击15%"""
    fields = dict(
        id="lion-1",
        owner_id="browser-a",
        species="lion",
        attack=75,
        defense=60,
        speed=70,
        recovery=4,
        health=100,
        max_health=100,
        energy=90,
        max_energy=90,
        moves=[
            Move(id="roar", name="力量咆哮", energy_cost=20, damage=25, critical_hit_chance=15),
            Move(id="pounce", name="猛扑", energy_cost=95, damage=35, critical_hit_chance=20),
        ],
    )
    fields.update(overrides)
    return Participant(**fields)


def make_tiger(**overrides) -> Participant:
    """防守方：速度85、防御55、生命95"""
    fields = dict(
        id="tiger-1",
        owner_id="browser-b",
        species="tiger",
        attack=80,
        defense=55,
        speed=85,
        recovery=5,
        health=95,
        max_health=95,
        energy=80,
        max_energy=95,
        moves=[
            Move(id="swipe", name="爪刃横扫", energy_cost=18, damage=22, critical_hit_chance=12),
        ],
    )
    fields.update(overrides)
    return Participant(**fields)


def make_state(attacker=None, defender=None, **overrides) -> BattleState:
    fields = dict(
        battle_id="battle-1",
        participants=[attacker or make_lion(), defender or make_tiger()],
        current_turn_participant_id="lion-1",
        turn_number=1,
        phase=GamePhase.ACTIVE,
        winner_id=None,
    )
    fields.update(overrides)
    return BattleState(**fields)


class RecordingPublisher:
    """记录所有推送，不做任何投递"""

    def __init__(self):
        self.published = []

    def publish(self, battle_id, event):
        self.published.append((battle_id, event))
        return 1

    def types(self):
        return [event["type"] for _, event in self.published]


@pytest.fixture
def battle_state():
    return make_state()


@pytest.fixture
def config_manager(tmp_path):
    return ConfigManager(data_path=tmp_path / "config", default_data_path=DEFAULT_DATA_PATH)


@pytest.fixture
def fighter_factory(config_manager):
    return FighterFactory(config_manager)


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "brawl.db")
    yield database
    database.close()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def broadcaster():
    return BattleBroadcaster(queue_size=3)


@pytest.fixture
def make_handlers(config_manager, db, publisher, fighter_factory):
    """按需注入随机序列构造处理器"""

    def _make(*percentages):
        random_source = ScriptedRandomSource.from_percentages(*percentages) if percentages else None
        return BrawlHandlers(
            config_manager=config_manager,
            db=db,
            publisher=publisher,
            fighter_factory=fighter_factory,
            random_source=random_source,
        )

    return _make


@pytest.fixture
def run():
    """在新的事件循环中运行协程"""

    def _run(coro):
        return asyncio.run(coro)

    return _run
