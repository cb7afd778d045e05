"""
回合控制器

负责回合切换、被动能量恢复与对战结束的判定。
状态机：WAITING（外部） -> ACTIVE -> FINISHED（终态，不可离开）
"""

from typing import Optional

from .models import BattleState, GamePhase, Participant


class TurnController:
    """
    回合控制器

    只操作传入的 BattleState，不持有任何状态。
    """

    @staticmethod
    def recover_energy(participant: Participant) -> int:
        """
        为角色恢复一次能量（不超过上限）

        Returns:
            实际恢复的能量
        """
        before = participant.energy
        participant.energy = min(participant.max_energy, participant.energy + participant.recovery)
        return participant.energy - before

    def advance_turn(self, state: BattleState, acting_id: str) -> Optional[Participant]:
        """
        切换到对手的回合

        先切换当前行动者，再为新的行动者恢复能量；
        恢复的永远是即将行动的一方，而不是刚行动完的一方。
        回合数 +1。

        Returns:
            新的当前行动者
        """
        if state.phase != GamePhase.ACTIVE:
            return None

        next_actor = state.other_participant(acting_id)
        if next_actor is None:
            return None

        state.current_turn_participant_id = next_actor.id
        self.recover_energy(next_actor)
        state.turn_number += 1
        return next_actor

    @staticmethod
    def check_victory(defender: Participant) -> bool:
        """防守方生命归零即分出胜负"""
        return defender.health <= 0

    @staticmethod
    def finish(state: BattleState, winner_id: str) -> None:
        """
        结束对战

        胜者只会被设置一次；结束后不再切换回合，回合数也不再增加。
        """
        if state.phase == GamePhase.FINISHED:
            return
        state.phase = GamePhase.FINISHED
        state.winner_id = winner_id
        state.current_turn_participant_id = None
