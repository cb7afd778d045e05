"""
战斗引擎主模块

BattleEngine 是对战状态唯一的修改者，负责：
- 查询当前行动者与对手
- 校验攻击/休息行动
- 执行攻击/休息并返回结构化结果

设计思想：
- 构造时深拷贝传入的快照，执行后返回新的深拷贝，不与调用方共享对象
- 行动要么完整生效，要么完全不生效（在工作副本上结算，成功后才提交）
- 随机判定通过注入的随机数源完成，便于测试时重放
"""

from typing import List, Optional

from ...log import logger
from .models import (
    AttackResult,
    BattleState,
    BattleSummary,
    GamePhase,
    Move,
    Participant,
    RestResult,
)
from .errors import ActionCheck, InvalidAction, RejectionReason
from .damage_calculator import DamageCalculator
from .random_source import RandomSource, SystemRandomSource
from .turn_controller import TurnController


class BattleEngine:
    """
    战斗引擎

    子模块：
    - DamageCalculator: 命中、伤害与暴击计算
    - TurnController: 回合切换、能量恢复与胜负判定
    """

    def __init__(self, state: BattleState, random_source: Optional[RandomSource] = None):
        """
        初始化战斗引擎

        Args:
            state: 对战状态快照（会被深拷贝，调用方的对象不会被修改）
            random_source: 随机数源，默认使用系统随机
        """
        self._state = state.clone()
        self.random_source = random_source or SystemRandomSource()

        self.damage_calculator = DamageCalculator(self.random_source)
        self.turn_controller = TurnController()

    # ==================== 状态查询 ====================

    @property
    def phase(self) -> GamePhase:
        return self._state.phase

    def get_state(self) -> BattleState:
        """获取当前对战状态（完整深拷贝）"""
        return self._state.clone()

    def get_current_actor(self) -> Optional[Participant]:
        """获取当前行动的角色，对战未在进行中时返回 None"""
        if self._state.phase != GamePhase.ACTIVE:
            return None
        current_id = self._state.current_turn_participant_id
        if current_id is None:
            return None
        return self._state.find_participant(current_id)

    def get_opponent(self, actor_id: str) -> Optional[Participant]:
        """获取指定角色的对手"""
        return self._state.other_participant(actor_id)

    def get_available_moves(self, actor_id: str) -> List[Move]:
        """获取角色当前能量足够使用的招式"""
        actor = self._state.find_participant(actor_id)
        if actor is None:
            return []
        return [m for m in actor.moves if actor.energy >= m.energy_cost]

    def get_battle_summary(self) -> BattleSummary:
        """获取对战摘要（只读视图）"""
        participants = self._state.participants
        player1 = participants[0].to_dict() if len(participants) > 0 else None
        player2 = participants[1].to_dict() if len(participants) > 1 else None

        current_player = None
        if self._state.phase != GamePhase.FINISHED:
            current_player = self._state.current_turn_participant_id

        return BattleSummary(
            player1=player1,
            player2=player2,
            current_player=current_player,
            game_phase=self._state.phase,
            turn_number=self._state.turn_number,
            winner=self._state.winner_id,
        )

    # ==================== 行动校验 ====================

    def validate_attack(self, actor_id: str, move_id: str) -> ActionCheck:
        """
        校验攻击行动

        按顺序检查，返回第一个不满足的原因：
        对战进行中 -> 角色存在 -> 招式存在 -> 能量足够 -> 未被击倒 -> 轮到该角色

        对战未进行时任何行动（包括未知角色、未知招式、能量不足）都只会得到 GameNotActive。
        """
        return self._validate_attack(self._state, actor_id, move_id)

    def validate_rest(self, actor_id: str) -> ActionCheck:
        """
        校验休息行动

        与攻击校验相同，但没有招式与能量检查；能量再低也可以休息。
        """
        return self._validate_rest(self._state, actor_id)

    @staticmethod
    def _validate_attack(state: BattleState, actor_id: str, move_id: str) -> ActionCheck:
        if state.phase != GamePhase.ACTIVE:
            return ActionCheck.reject(RejectionReason.GAME_NOT_ACTIVE)

        actor = state.find_participant(actor_id)
        if actor is None:
            return ActionCheck.reject(RejectionReason.UNKNOWN_PARTICIPANT)

        move = actor.find_move(move_id)
        if move is None:
            return ActionCheck.reject(RejectionReason.UNKNOWN_MOVE)

        if actor.energy < move.energy_cost:
            return ActionCheck.reject(RejectionReason.INSUFFICIENT_ENERGY)

        return BattleEngine._validate_turn(state, actor)

    @staticmethod
    def _validate_rest(state: BattleState, actor_id: str) -> ActionCheck:
        if state.phase != GamePhase.ACTIVE:
            return ActionCheck.reject(RejectionReason.GAME_NOT_ACTIVE)

        actor = state.find_participant(actor_id)
        if actor is None:
            return ActionCheck.reject(RejectionReason.UNKNOWN_PARTICIPANT)
        return BattleEngine._validate_turn(state, actor)

    @staticmethod
    def _validate_turn(state: BattleState, actor: Participant) -> ActionCheck:
        """
        攻击与休息共用的最后两项检查

        调用前已确认对战进行中，因此被击倒只会出现在进行中的状态里。
        """
        if actor.is_defeated:
            return ActionCheck.reject(RejectionReason.PARTICIPANT_DEFEATED)

        if state.current_turn_participant_id != actor.id:
            return ActionCheck.reject(RejectionReason.NOT_YOUR_TURN)

        return ActionCheck.ok()

    # ==================== 行动执行 ====================

    def execute_attack(self, actor_id: str, move_id: str) -> AttackResult:
        """
        执行攻击

        Args:
            actor_id: 攻击方角色ID
            move_id: 招式ID

        Returns:
            攻击结果

        Raises:
            InvalidAction: 行动非法，此时状态不变
        """
        check = self.validate_attack(actor_id, move_id)
        if not check.can_use:
            raise InvalidAction(check.reason)

        # 在工作副本上结算，全部完成后才提交
        working = self._state.clone()
        attacker = working.find_participant(actor_id)
        defender = working.other_participant(actor_id)
        move = attacker.find_move(move_id)

        # 1. 记录结算前的数值
        defender_health_before = defender.health
        attacker_energy_before = attacker.energy

        # 2. 命中判定
        is_hit = self.damage_calculator.check_hit(attacker, defender)

        damage = 0
        is_critical = False
        if is_hit:
            # 3. 伤害计算与暴击判定
            damage = self.damage_calculator.base_damage(move, attacker, defender)
            is_critical = self.damage_calculator.check_critical(move)
            if is_critical:
                damage = self.damage_calculator.apply_critical(damage)
            defender.health = max(0, defender.health - damage)

        # 4. 无论是否命中都消耗能量
        attacker.energy = max(0, attacker.energy - move.energy_cost)

        # 5. 胜负判定，结束时不切换回合
        game_over = self.turn_controller.check_victory(defender)
        if game_over:
            self.turn_controller.finish(working, attacker.id)
        else:
            self.turn_controller.advance_turn(working, attacker.id)

        result = AttackResult(
            actor_id=attacker.id,
            defender_id=defender.id,
            move_used=move,
            damage=damage,
            is_critical=is_critical,
            is_hit=is_hit,
            defender_health_before=defender_health_before,
            defender_health_after=defender.health,
            actor_energy_before=attacker_energy_before,
            actor_energy_after=attacker.energy,
            game_over=game_over,
            winner_id=attacker.id if game_over else None,
        )

        self._state = working
        logger.debug(
            f"[BattleEngine] {self._state.battle_id} 攻击结算: "
            f"{attacker.id} -> {defender.id} {move.id} "
            f"hit={is_hit} crit={is_critical} dmg={damage}"
        )
        return result

    def execute_rest(self, actor_id: str) -> RestResult:
        """
        执行休息

        休息方立即恢复自己的恢复值，然后回合切换，
        对手在回合开始时再获得自己的被动恢复。休息不会结束对战。

        Raises:
            InvalidAction: 行动非法，此时状态不变
        """
        check = self.validate_rest(actor_id)
        if not check.can_use:
            raise InvalidAction(check.reason)

        working = self._state.clone()
        actor = working.find_participant(actor_id)

        energy_before = actor.energy
        recovered = self.turn_controller.recover_energy(actor)
        self.turn_controller.advance_turn(working, actor.id)

        result = RestResult(
            actor_id=actor.id,
            energy_before=energy_before,
            energy_after=actor.energy,
            energy_recovered=recovered,
        )

        self._state = working
        logger.debug(
            f"[BattleEngine] {self._state.battle_id} 休息结算: "
            f"{actor.id} 恢复 {recovered} 能量"
        )
        return result
