"""
角色工厂

根据物种的属性模板创建对战角色。
属性与招式是预先生成好的数据，这里只负责实例化。
"""

import uuid
from typing import Dict, List, Optional, TYPE_CHECKING

from ..log import logger
from .battle.constants import (
    DEFAULT_ATTACK,
    DEFAULT_DEFENSE,
    DEFAULT_SPEED,
    DEFAULT_HEALTH,
    DEFAULT_ENERGY,
    DEFAULT_RECOVERY,
)
from .battle.models import Move, Participant

if TYPE_CHECKING:
    from .config_manager import ConfigManager


class InvalidSpecies(ValueError):
    """未知物种"""

    def __init__(self, species: str):
        self.species = species
        super().__init__(f"未知物种: {species}")


def new_id() -> str:
    """生成角色与招式ID（完整的 uuid4，作为全局主键使用）"""
    return uuid.uuid4().hex


class FighterFactory:
    """
    角色工厂

    没有专属模板的物种使用默认模板（狮子）。
    """

    def __init__(self, config_manager: "ConfigManager", default_template: str = "lion"):
        self.config = config_manager
        self.default_template = default_template

    def is_valid_species(self, species: str) -> bool:
        return self.config.get_item("species", species) is not None

    def list_species(self) -> List[Dict]:
        """获取可选物种列表"""
        return list(self.config.species.values())

    def get_template(self, species: str) -> Optional[Dict]:
        """获取物种的属性模板，没有则退回默认模板"""
        template = self.config.get_item("fighters", species)
        if template is None:
            logger.debug(f"物种 {species} 没有专属模板，使用默认模板 {self.default_template}")
            template = self.config.get_item("fighters", self.default_template)
        return template

    def create(self, species: str, owner_id: str) -> Participant:
        """
        创建对战角色

        Args:
            species: 物种ID
            owner_id: 所属玩家ID

        Returns:
            满血满能量的新角色

        Raises:
            InvalidSpecies: 物种不存在
        """
        if not self.is_valid_species(species):
            raise InvalidSpecies(species)

        template = self.get_template(species) or {}

        health = int(template.get("health", DEFAULT_HEALTH))
        energy = int(template.get("energy", DEFAULT_ENERGY))

        moves = [
            Move.from_dict({**move_data, "id": new_id()})
            for move_data in template.get("moves", [])
        ]
        if not moves:
            raise ValueError(f"物种 {species} 的模板没有任何招式")

        return Participant(
            id=new_id(),
            owner_id=owner_id,
            species=species,
            attack=int(template.get("attack", DEFAULT_ATTACK)),
            defense=int(template.get("defense", DEFAULT_DEFENSE)),
            speed=int(template.get("speed", DEFAULT_SPEED)),
            recovery=int(template.get("recovery", DEFAULT_RECOVERY)),
            health=health,
            max_health=health,
            energy=energy,
            max_energy=energy,
            moves=moves,
        )
