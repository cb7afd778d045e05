"""
随机数源

战斗引擎的命中与暴击判定都通过注入的随机数源完成，
测试时可以替换为固定序列，实现可重放的战斗。
"""

import random
from typing import Iterable, List, Optional, Protocol


class RandomSource(Protocol):
    """随机数源接口：next() 返回 [0, 1) 区间内的均匀随机数"""

    def next(self) -> float:
        ...


class SystemRandomSource:
    """
    基于 random.Random 的随机数源

    传入 seed 时结果可重放。
    """

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def next(self) -> float:
        return self._rng.random()


class ScriptedRandomSource:
    """
    按预设序列返回随机数

    用于强制命中/未命中/暴击，序列耗尽后抛出 IndexError。
    """

    def __init__(self, values: Iterable[float]):
        self._values: List[float] = list(values)
        for value in self._values:
            if not 0 <= value < 1:
                raise ValueError(f"随机数必须在 [0, 1) 区间内: {value}")
        self._index = 0

    @classmethod
    def from_percentages(cls, *percentages: float) -> "ScriptedRandomSource":
        """以百分比形式构造，如 from_percentages(50, 90)"""
        return cls(p / 100 for p in percentages)

    @property
    def remaining(self) -> int:
        return len(self._values) - self._index

    def next(self) -> float:
        if self._index >= len(self._values):
            raise IndexError("预设随机序列已耗尽")
        value = self._values[self._index]
        self._index += 1
        return value
