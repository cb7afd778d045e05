"""
核心模块统一导出
"""

from .config_manager import ConfigManager, ConfigLoadError
from .fighter import FighterFactory, InvalidSpecies
from .broadcaster import BattleBroadcaster, Publisher, Subscriber
from .battle import (
    BattleEngine,
    BattleRenderer,
    BattleState,
    BattleSummary,
    BattleEvent,
    BattleEventType,
    AttackResult,
    RestResult,
    Participant,
    Move,
    GamePhase,
    RejectionReason,
    ActionCheck,
    InvalidAction,
)

__all__ = [
    # 配置
    "ConfigManager",
    "ConfigLoadError",

    # 角色
    "FighterFactory",
    "InvalidSpecies",

    # 推送
    "BattleBroadcaster",
    "Publisher",
    "Subscriber",

    # 战斗
    "BattleEngine",
    "BattleRenderer",
    "BattleState",
    "BattleSummary",
    "BattleEvent",
    "BattleEventType",
    "AttackResult",
    "RestResult",
    "Participant",
    "Move",
    "GamePhase",
    "RejectionReason",
    "ActionCheck",
    "InvalidAction",
]
