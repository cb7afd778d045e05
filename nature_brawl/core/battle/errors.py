"""
战斗行动的拒绝原因与异常

validate_* 系列方法以数据形式返回拒绝原因（ActionCheck），
execute_* 系列方法在行动非法时抛出 InvalidAction。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class RejectionReason(Enum):
    """行动被拒绝的原因"""
    UNKNOWN_PARTICIPANT = "UnknownParticipant"
    UNKNOWN_MOVE = "UnknownMove"
    INSUFFICIENT_ENERGY = "InsufficientEnergy"
    PARTICIPANT_DEFEATED = "ParticipantDefeated"
    GAME_NOT_ACTIVE = "GameNotActive"
    NOT_YOUR_TURN = "NotYourTurn"

    @property
    def message(self) -> str:
        """面向玩家的提示文本"""
        return REJECTION_MESSAGES[self]


REJECTION_MESSAGES: Dict[RejectionReason, str] = {
    RejectionReason.UNKNOWN_PARTICIPANT: "该角色不在这场对战中",
    RejectionReason.UNKNOWN_MOVE: "该角色没有这个招式",
    RejectionReason.INSUFFICIENT_ENERGY: "能量不足，无法使用该招式",
    RejectionReason.PARTICIPANT_DEFEATED: "该角色已被击倒",
    RejectionReason.GAME_NOT_ACTIVE: "对战未在进行中",
    RejectionReason.NOT_YOUR_TURN: "还没轮到你行动",
}


@dataclass(frozen=True)
class ActionCheck:
    """行动校验结果"""
    can_use: bool
    reason: Optional[RejectionReason] = None

    @classmethod
    def ok(cls) -> "ActionCheck":
        return cls(can_use=True)

    @classmethod
    def reject(cls, reason: RejectionReason) -> "ActionCheck":
        return cls(can_use=False, reason=reason)

    def to_dict(self) -> Dict:
        data = {"can_use": self.can_use}
        if self.reason is not None:
            data["reason"] = self.reason.value
            data["message"] = self.reason.message
        return data


class BattleError(Exception):
    """战斗系统异常基类"""


class InvalidAction(BattleError):
    """
    非法行动

    抛出时战斗状态保持不变，调用方应视为"行动未发生"。
    """

    def __init__(self, reason: RejectionReason):
        self.reason = reason
        super().__init__(f"{reason.value}: {reason.message}")
