"""
战斗系统常量定义

所有平衡数值集中在这里管理，方便后续调整。
"""

from typing import Dict


# ==================== 命中相关 ====================

# 基础命中率（百分比）
BASE_HIT_CHANCE = 85

# 速度差对命中率的影响系数（每点速度差 +0.5%）
SPEED_HIT_FACTOR = 0.5

# 命中率下限 / 上限
MIN_HIT_CHANCE = 60
MAX_HIT_CHANCE = 95


# ==================== 伤害相关 ====================

# 攻击力加成比例（攻击属性的10%）
ATTACK_BONUS_RATIO = 0.10

# 防御减伤比例（防御属性的8%）
DEFENSE_REDUCTION_RATIO = 0.08

# 命中时的最低伤害
MIN_DAMAGE = 1

# 暴击伤害倍率
CRITICAL_MULTIPLIER = 2

# 随机数放大到百分比
PERCENT_SCALE = 100


# ==================== 默认属性值 ====================

DEFAULT_ATTACK = 50
DEFAULT_DEFENSE = 50
DEFAULT_SPEED = 50
DEFAULT_HEALTH = 100
DEFAULT_ENERGY = 100
DEFAULT_RECOVERY = 3
DEFAULT_CRITICAL_CHANCE = 10

# 回合计数起点
FIRST_TURN = 1


# ==================== UI渲染相关 ====================

# 状态条长度
BAR_LENGTH = 10

# 状态条字符
BAR_FULL = "█"
BAR_MEDIUM = "▓"
BAR_LOW = "░"
BAR_EMPTY = "·"

# 阈值
BAR_THRESHOLD_HIGH = 0.5
BAR_THRESHOLD_LOW = 0.2

# 分隔线
SEPARATOR_DOUBLE = "═"
SEPARATOR_SINGLE = "─"
SEPARATOR_LENGTH = 24


# ==================== 战斗事件图标 ====================

EVENT_ICONS: Dict[str, str] = {
    "attack-hit": "⚔️",
    "attack-miss": "💨",
    "critical": "💥",
    "rest": "🌟",
    "victory": "🏆",
    "info": "⚔️",
}

# 未知物种的占位
UNKNOWN_SPECIES_NAME = "未知"
UNKNOWN_SPECIES_EMOJI = "❓"
