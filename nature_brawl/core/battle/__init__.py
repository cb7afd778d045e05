"""
战斗系统模块

- constants.py: 战斗常量
- models.py: 数据类定义
- errors.py: 拒绝原因与异常
- random_source.py: 可注入的随机数源
- damage_calculator.py: 命中、伤害与暴击计算
- turn_controller.py: 回合切换与胜负判定
- battle_renderer.py: 战斗事件与文本渲染
- battle_engine.py: 战斗引擎（协调者）
"""

# 导出主要接口
from .models import (
    GamePhase,
    BattleEventType,
    Move,
    Participant,
    BattleState,
    AttackResult,
    RestResult,
    BattleSummary,
    BattleEvent,
)
from .errors import (
    RejectionReason,
    ActionCheck,
    BattleError,
    InvalidAction,
)
from .random_source import (
    RandomSource,
    SystemRandomSource,
    ScriptedRandomSource,
)
from .battle_renderer import BattleRenderer
from .battle_engine import BattleEngine

__all__ = [
    # 枚举类型
    "GamePhase",
    "BattleEventType",
    "RejectionReason",
    # 数据类
    "Move",
    "Participant",
    "BattleState",
    "AttackResult",
    "RestResult",
    "BattleSummary",
    "BattleEvent",
    "ActionCheck",
    # 异常
    "BattleError",
    "InvalidAction",
    # 随机数源
    "RandomSource",
    "SystemRandomSource",
    "ScriptedRandomSource",
    # 主系统
    "BattleRenderer",
    "BattleEngine",
]
