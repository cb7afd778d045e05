"""
伤害计算器

负责所有伤害相关的计算，包括：
- 命中率计算与命中判定
- 基础伤害与防御减伤
- 暴击判定
"""

import math
from typing import TYPE_CHECKING

from .constants import (
    BASE_HIT_CHANCE,
    SPEED_HIT_FACTOR,
    MIN_HIT_CHANCE,
    MAX_HIT_CHANCE,
    ATTACK_BONUS_RATIO,
    DEFENSE_REDUCTION_RATIO,
    MIN_DAMAGE,
    CRITICAL_MULTIPLIER,
    PERCENT_SCALE,
)

if TYPE_CHECKING:
    from .models import Move, Participant
    from .random_source import RandomSource


def round_half_up(value: float) -> int:
    """四舍五入（0.5 向上取整，与内置 round 的银行家舍入不同）"""
    return int(math.floor(value + 0.5))


class DamageCalculator:
    """
    伤害计算器

    纯计算类，不修改任何状态；随机判定都从注入的随机数源取值。
    """

    def __init__(self, random_source: "RandomSource"):
        """
        初始化伤害计算器

        Args:
            random_source: 随机数源，next() 返回 [0, 1)
        """
        self.random_source = random_source

    @staticmethod
    def hit_chance(attacker: "Participant", defender: "Participant") -> float:
        """
        计算命中率（百分比）

        基础85%，速度每高出1点 +0.5%，结果限制在 [60, 95]。
        速度差再大也只会饱和在边界上。
        """
        speed_difference = attacker.speed - defender.speed
        chance = BASE_HIT_CHANCE + speed_difference * SPEED_HIT_FACTOR
        return max(MIN_HIT_CHANCE, min(MAX_HIT_CHANCE, chance))

    @staticmethod
    def base_damage(move: "Move", attacker: "Participant", defender: "Participant") -> int:
        """
        计算暴击前的伤害

        伤害 = 招式威力 + 攻击×10% - 防御×8%，命中时至少为1。
        """
        raw = move.damage + attacker.attack * ATTACK_BONUS_RATIO
        reduction = defender.defense * DEFENSE_REDUCTION_RATIO
        return round_half_up(max(MIN_DAMAGE, raw - reduction))

    @staticmethod
    def apply_critical(damage: int) -> int:
        """暴击伤害翻倍"""
        return round_half_up(damage * CRITICAL_MULTIPLIER)

    def roll_percent(self) -> float:
        """抽取一次 [0, 100) 的随机值"""
        return self.random_source.next() * PERCENT_SCALE

    def check_hit(self, attacker: "Participant", defender: "Participant") -> bool:
        """命中判定：随机值严格小于命中率即命中"""
        return self.roll_percent() < self.hit_chance(attacker, defender)

    def check_critical(self, move: "Move") -> bool:
        """暴击判定（独立于命中判定的一次抽取）"""
        return self.roll_percent() < move.critical_hit_chance
