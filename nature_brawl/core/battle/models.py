"""
战斗系统数据模型

定义对战中使用的所有数据类和枚举类型。
"""

import copy
from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .constants import (
    DEFAULT_ATTACK,
    DEFAULT_DEFENSE,
    DEFAULT_SPEED,
    DEFAULT_HEALTH,
    DEFAULT_ENERGY,
    DEFAULT_RECOVERY,
    DEFAULT_CRITICAL_CHANCE,
    FIRST_TURN,
)


class GamePhase(Enum):
    """对战阶段"""
    WAITING = "waiting"     # 等待挑战者加入（由加入流程处理）
    ACTIVE = "active"       # 对战进行中
    FINISHED = "finished"   # 对战结束（终态）


class BattleEventType(Enum):
    """战斗事件类型"""
    ATTACK_HIT = "attack-hit"
    ATTACK_MISS = "attack-miss"
    REST = "rest"
    VICTORY = "victory"
    INFO = "info"


@dataclass(frozen=True)
class Move:
    """
    招式

    属于某一个角色，对战开始后不可增删。
    """
    id: str
    name: str = ""
    description: str = ""
    energy_cost: int = 0
    damage: int = 0                  # 基础伤害
    critical_hit_chance: int = DEFAULT_CRITICAL_CHANCE  # 暴击率（百分比 0-100）

    def __post_init__(self):
        if self.energy_cost < 0:
            raise ValueError(f"招式 {self.id} 的能量消耗不能为负数")
        if self.damage < 0:
            raise ValueError(f"招式 {self.id} 的基础伤害不能为负数")
        if not 0 <= self.critical_hit_chance <= 100:
            raise ValueError(f"招式 {self.id} 的暴击率必须在 0-100 之间")

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "energy_cost": self.energy_cost,
            "damage": self.damage,
            "critical_hit_chance": self.critical_hit_chance,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Move":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            description=data.get("description", ""),
            energy_cost=int(data.get("energy_cost", 0)),
            damage=int(data.get("damage", 0)),
            critical_hit_chance=int(data.get("critical_hit_chance", DEFAULT_CRITICAL_CHANCE)),
        )


@dataclass
class Participant:
    """
    对战角色

    每场对战恰好两个。攻防速与恢复值在对战期间固定，
    生命与能量只会通过战斗引擎改变。
    """
    id: str
    owner_id: str = ""      # 所属玩家（浏览器）ID，仅供调用方鉴权
    species: str = ""       # 物种标识，仅用于展示

    attack: int = DEFAULT_ATTACK
    defense: int = DEFAULT_DEFENSE
    speed: int = DEFAULT_SPEED
    recovery: int = DEFAULT_RECOVERY

    health: int = DEFAULT_HEALTH
    max_health: int = DEFAULT_HEALTH
    energy: int = DEFAULT_ENERGY
    max_energy: int = DEFAULT_ENERGY

    moves: List[Move] = field(default_factory=list)

    @property
    def is_defeated(self) -> bool:
        return self.health <= 0

    def find_move(self, move_id: str) -> Optional[Move]:
        """按ID查找招式"""
        for move in self.moves:
            if move.id == move_id:
                return move
        return None

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "species": self.species,
            "attack": self.attack,
            "defense": self.defense,
            "speed": self.speed,
            "recovery": self.recovery,
            "health": self.health,
            "max_health": self.max_health,
            "energy": self.energy,
            "max_energy": self.max_energy,
            "moves": [m.to_dict() for m in self.moves],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Participant":
        max_health = int(data.get("max_health", DEFAULT_HEALTH))
        max_energy = int(data.get("max_energy", DEFAULT_ENERGY))
        return cls(
            id=str(data["id"]),
            owner_id=data.get("owner_id", ""),
            species=data.get("species", ""),
            attack=int(data.get("attack", DEFAULT_ATTACK)),
            defense=int(data.get("defense", DEFAULT_DEFENSE)),
            speed=int(data.get("speed", DEFAULT_SPEED)),
            recovery=int(data.get("recovery", DEFAULT_RECOVERY)),
            health=int(data.get("health", max_health)),
            max_health=max_health,
            energy=int(data.get("energy", max_energy)),
            max_energy=max_energy,
            moves=[Move.from_dict(m) for m in data.get("moves", [])],
        )


@dataclass
class BattleState:
    """
    对战状态

    保存整场对战的快照，是战斗引擎唯一会修改的数据结构。
    player1 / player2 只是位置，不代表先后手。
    """
    battle_id: str = ""
    participants: List[Participant] = field(default_factory=list)
    current_turn_participant_id: Optional[str] = None
    turn_number: int = FIRST_TURN
    phase: GamePhase = GamePhase.WAITING
    winner_id: Optional[str] = None

    def find_participant(self, participant_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    def other_participant(self, participant_id: str) -> Optional[Participant]:
        """获取另一方角色（participant_id 必须属于本场对战）"""
        if self.find_participant(participant_id) is None:
            return None
        for participant in self.participants:
            if participant.id != participant_id:
                return participant
        return None

    def clone(self) -> "BattleState":
        """深拷贝，不与原对象共享任何可变数据"""
        return copy.deepcopy(self)

    @staticmethod
    def derive_phase(participant_count: int, winner_id: Optional[str]) -> GamePhase:
        """根据存储数据推导阶段：有胜者即结束，两名角色即进行中"""
        if winner_id:
            return GamePhase.FINISHED
        if participant_count == 2:
            return GamePhase.ACTIVE
        return GamePhase.WAITING

    def to_dict(self) -> Dict:
        return {
            "battle_id": self.battle_id,
            "participants": [p.to_dict() for p in self.participants],
            "current_turn_participant_id": self.current_turn_participant_id,
            "turn_number": self.turn_number,
            "phase": self.phase.value,
            "winner_id": self.winner_id,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "BattleState":
        participants = [Participant.from_dict(p) for p in data.get("participants", [])]
        winner_id = data.get("winner_id")
        phase = data.get("phase")
        return cls(
            battle_id=data.get("battle_id", ""),
            participants=participants,
            current_turn_participant_id=data.get("current_turn_participant_id"),
            turn_number=int(data.get("turn_number", FIRST_TURN)),
            phase=GamePhase(phase) if phase else cls.derive_phase(len(participants), winner_id),
            winner_id=winner_id,
        )


@dataclass
class AttackResult:
    """
    一次攻击的结果

    交给存储层与推送层使用，记录了这次攻击发生的一切。
    """
    actor_id: str
    defender_id: str
    move_used: Move
    damage: int = 0
    is_critical: bool = False
    is_hit: bool = False
    defender_health_before: int = 0
    defender_health_after: int = 0
    actor_energy_before: int = 0
    actor_energy_after: int = 0
    game_over: bool = False
    winner_id: Optional[str] = None  # 仅在 game_over 时存在

    def to_dict(self) -> Dict:
        data = {
            "actor_id": self.actor_id,
            "defender_id": self.defender_id,
            "move_used": self.move_used.to_dict(),
            "damage": self.damage,
            "is_critical": self.is_critical,
            "is_hit": self.is_hit,
            "defender_health_before": self.defender_health_before,
            "defender_health_after": self.defender_health_after,
            "actor_energy_before": self.actor_energy_before,
            "actor_energy_after": self.actor_energy_after,
            "game_over": self.game_over,
        }
        if self.game_over:
            data["winner_id"] = self.winner_id
        return data


@dataclass
class RestResult:
    """一次休息的结果"""
    actor_id: str
    energy_before: int = 0
    energy_after: int = 0
    energy_recovered: int = 0

    def to_dict(self) -> Dict:
        return {
            "actor_id": self.actor_id,
            "energy_before": self.energy_before,
            "energy_after": self.energy_after,
            "energy_recovered": self.energy_recovered,
        }


@dataclass
class BattleSummary:
    """对战摘要（只读展示视图）"""
    player1: Optional[Dict]
    player2: Optional[Dict]
    current_player: Optional[str]
    game_phase: GamePhase
    turn_number: int
    winner: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "player1": self.player1,
            "player2": self.player2,
            "current_player": self.current_player,
            "game_phase": self.game_phase.value,
            "turn_number": self.turn_number,
            "winner": self.winner,
        }


@dataclass
class BattleEvent:
    """
    战斗事件

    由行动结果一一推导，用于战斗日志与推送。
    """
    event_type: BattleEventType
    turn_number: int
    message: str

    def to_dict(self) -> Dict:
        return {
            "event_type": self.event_type.value,
            "turn_number": self.turn_number,
            "message": self.message,
        }
