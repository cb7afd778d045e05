"""
战斗渲染器

负责战斗相关的文本渲染，包括：
- 由行动结果推导战斗事件（战斗日志）
- 对战状态面板
- HP / 能量条
"""

from typing import Dict, List, Optional, TYPE_CHECKING

from .constants import (
    BAR_LENGTH,
    BAR_FULL,
    BAR_MEDIUM,
    BAR_LOW,
    BAR_EMPTY,
    BAR_THRESHOLD_HIGH,
    BAR_THRESHOLD_LOW,
    EVENT_ICONS,
    SEPARATOR_DOUBLE,
    SEPARATOR_SINGLE,
    SEPARATOR_LENGTH,
    UNKNOWN_SPECIES_NAME,
    UNKNOWN_SPECIES_EMOJI,
)
from .models import (
    AttackResult,
    BattleEvent,
    BattleEventType,
    BattleState,
    GamePhase,
    Participant,
    RestResult,
)

if TYPE_CHECKING:
    from ..config_manager import ConfigManager


class BattleRenderer:
    """
    战斗渲染器

    负责生成战斗相关的显示文本。
    """

    def __init__(self, config_manager: Optional["ConfigManager"] = None):
        """
        初始化战斗渲染器

        Args:
            config_manager: 配置管理器，用于读取物种名称与图标
        """
        self.config = config_manager

    # ==================== 物种信息 ====================

    def get_species_name(self, species_id: str) -> str:
        species = self._get_species(species_id)
        if not species:
            return UNKNOWN_SPECIES_NAME
        return species.get("name", species_id)

    def get_species_emoji(self, species_id: str) -> str:
        species = self._get_species(species_id)
        if not species:
            return UNKNOWN_SPECIES_EMOJI
        return species.get("emoji", UNKNOWN_SPECIES_EMOJI)

    def _get_species(self, species_id: str) -> Optional[Dict]:
        if self.config is None:
            return None
        return self.config.get_item("species", species_id)

    def _display_name(self, state: BattleState, participant_id: str) -> str:
        participant = state.find_participant(participant_id)
        if participant is None:
            return UNKNOWN_SPECIES_NAME
        return self.get_species_name(participant.species)

    # ==================== 战斗事件 ====================

    def events_for_attack(self, result: AttackResult, state: BattleState) -> List[BattleEvent]:
        """
        由攻击结果推导战斗事件

        命中 -> attack-hit，未命中 -> attack-miss，击倒对手时追加 victory。

        Args:
            result: 攻击结果
            state: 攻击后的对战状态

        Returns:
            战斗事件列表
        """
        attacker_name = self._display_name(state, result.actor_id)
        defender_name = self._display_name(state, result.defender_id)
        move_name = result.move_used.name or result.move_used.id
        turn = state.turn_number

        events = []
        if result.is_hit:
            message = f"{EVENT_ICONS['attack-hit']} {attacker_name} 使用了 {move_name}！"
            if result.is_critical:
                message += f" {EVENT_ICONS['critical']} 暴击！"
            message += f" 对 {defender_name} 造成 {result.damage} 点伤害。"
            events.append(BattleEvent(BattleEventType.ATTACK_HIT, turn, message))
        else:
            message = f"{EVENT_ICONS['attack-miss']} {attacker_name} 使用了 {move_name}，但是没有命中！"
            events.append(BattleEvent(BattleEventType.ATTACK_MISS, turn, message))

        if result.game_over:
            message = f"{EVENT_ICONS['victory']} {attacker_name} 赢得了对战！"
            events.append(BattleEvent(BattleEventType.VICTORY, turn, message))

        return events

    def event_for_rest(self, result: RestResult, state: BattleState) -> BattleEvent:
        """由休息结果推导战斗事件"""
        name = self._display_name(state, result.actor_id)
        message = f"{EVENT_ICONS['rest']} {name} 休息了一下，恢复了 {result.energy_recovered} 点能量！"
        return BattleEvent(BattleEventType.REST, state.turn_number, message)

    def event_for_battle_start(self, state: BattleState) -> BattleEvent:
        """对战开始事件"""
        message = f"{EVENT_ICONS['info']} 对战开始！请选择你的招式！"
        return BattleEvent(BattleEventType.INFO, state.turn_number, message)

    # ==================== 状态面板 ====================

    def get_battle_status_text(self, state: BattleState) -> str:
        """
        获取对战状态文本

        Args:
            state: 对战状态

        Returns:
            格式化的对战状态文本
        """
        if len(state.participants) < 2:
            return "等待挑战者加入..."

        lines = [f"第 {state.turn_number} 回合", SEPARATOR_DOUBLE * SEPARATOR_LENGTH]
        for i, participant in enumerate(state.participants):
            if i > 0:
                lines.append(SEPARATOR_SINGLE * SEPARATOR_LENGTH)
            lines.extend(self._participant_lines(state, participant))
        lines.append(SEPARATOR_DOUBLE * SEPARATOR_LENGTH)

        if state.phase == GamePhase.FINISHED:
            lines.append(f"{EVENT_ICONS['victory']} 胜者: {self._display_name(state, state.winner_id)}")

        return "\n".join(lines)

    def _participant_lines(self, state: BattleState, participant: Participant) -> List[str]:
        marker = "▶ " if participant.id == state.current_turn_participant_id else ""
        emoji = self.get_species_emoji(participant.species)
        name = self.get_species_name(participant.species)
        return [
            f"{marker}{emoji} {name}",
            f"HP: {self._get_bar(participant.health, participant.max_health)} "
            f"{participant.health}/{participant.max_health}",
            f"EN: {self._get_bar(participant.energy, participant.max_energy)} "
            f"{participant.energy}/{participant.max_energy}",
        ]

    def _get_bar(self, current: int, maximum: int, length: int = BAR_LENGTH) -> str:
        """
        生成状态条

        Args:
            current: 当前值
            maximum: 最大值
            length: 条长度

        Returns:
            状态条字符串
        """
        ratio = current / maximum if maximum > 0 else 0
        filled = int(ratio * length)
        empty = length - filled

        # 根据比例选择字符
        if ratio > BAR_THRESHOLD_HIGH:
            char = BAR_FULL
        elif ratio > BAR_THRESHOLD_LOW:
            char = BAR_MEDIUM
        else:
            char = BAR_LOW

        return char * filled + BAR_EMPTY * empty
