"""
对战相关请求处理器
- 发起挑战、接受挑战
- 攻击、休息
- 对战状态与战斗日志查询

处理器是战斗引擎的调用方：读取快照 -> 构造引擎 -> 执行行动 -> 保存新状态 -> 推送结果。
同一场对战的写操作通过 asyncio.Lock 串行化，避免两个请求基于过期状态同时成功。
"""

import asyncio
import secrets
import uuid
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..log import logger
from ..core.battle import (
    BattleEngine,
    BattleRenderer,
    BattleState,
    Participant,
    RandomSource,
    SystemRandomSource,
)
from ..core.fighter import InvalidSpecies

if TYPE_CHECKING:
    from ..core.config_manager import ConfigManager
    from ..core.broadcaster import Publisher
    from ..core.fighter import FighterFactory
    from ..database import Database


class BrawlError(Exception):
    """对战请求异常基类"""
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidRequest(BrawlError):
    """请求参数错误"""
    status_code = 400


class Unauthorized(BrawlError):
    """角色不存在或不属于请求者"""
    status_code = 403


class BrawlNotFound(BrawlError):
    """对战不存在"""
    status_code = 404


class BrawlConflict(BrawlError):
    """对战状态冲突（如挑战已被接受）"""
    status_code = 409


class BrawlHandlers:
    """对战相关请求处理器"""

    def __init__(self,
                 config_manager: "ConfigManager",
                 db: "Database",
                 publisher: "Publisher",
                 fighter_factory: "FighterFactory",
                 random_source: Optional[RandomSource] = None):
        """
        初始化处理器

        Args:
            config_manager: 配置管理器
            db: 数据库
            publisher: 推送接口（广播器）
            fighter_factory: 角色工厂
            random_source: 战斗随机数源，默认系统随机
        """
        self.config = config_manager
        self.db = db
        self.publisher = publisher
        self.factory = fighter_factory
        self.random_source = random_source or SystemRandomSource()
        self.renderer = BattleRenderer(config_manager)

        self.slug_length = int(config_manager.get_setting("battle", "slug_length", 8))

        # 每场对战一把锁 {slug: Lock}，以及持有或等待该锁的请求数
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _brawl_lock(self, slug: str):
        """串行化同一场对战的写操作，最后一个使用者离开时移除这把锁"""
        lock = self._locks.setdefault(slug, asyncio.Lock())
        self._lock_users[slug] = self._lock_users.get(slug, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[slug] -= 1
            if not self._lock_users[slug]:
                del self._lock_users[slug]
                del self._locks[slug]

    # ==================== 辅助方法 ====================

    @staticmethod
    def _require(**fields: Any) -> None:
        """检查必填参数"""
        missing = [name for name, value in fields.items() if not value]
        if missing:
            raise InvalidRequest(f"缺少参数: {', '.join(missing)}")

    async def _generate_slug(self) -> str:
        """生成唯一的短链接标识"""
        while True:
            slug = secrets.token_urlsafe(self.slug_length)[:self.slug_length]
            if not await self.db.async_slug_exists(slug):
                return slug

    def _create_fighter(self, species: str, owner_id: str) -> Participant:
        try:
            return self.factory.create(species, owner_id)
        except InvalidSpecies:
            raise InvalidRequest(f"无效的物种: {species}")

    async def _load_state(self, slug: str) -> BattleState:
        state = await self.db.async_load_battle_state(slug)
        if state is None:
            raise BrawlNotFound("对战不存在")
        return state

    @staticmethod
    def _check_owner(state: BattleState, participant_id: str, owner_id: str) -> Participant:
        """确认角色属于请求者"""
        participant = state.find_participant(participant_id)
        if participant is None or participant.owner_id != owner_id:
            raise Unauthorized("角色不存在或无权操作")
        return participant

    async def _store_events(self, state: BattleState, events) -> None:
        for event in events:
            await self.db.async_store_battle_event(
                state.battle_id, event.turn_number, event.event_type.value, event.message
            )

    # ==================== 发起 / 接受挑战 ====================

    async def create_brawl(self, species: str, owner_id: str) -> Dict:
        """
        发起挑战

        Args:
            species: 挑战者选择的物种
            owner_id: 挑战者ID

        Returns:
            {slug, brawl_id, character_id}
        """
        self._require(species=species, owner_id=owner_id)
        fighter = self._create_fighter(species, owner_id)

        slug = await self._generate_slug()
        brawl_id = str(uuid.uuid4())
        # 挑战者先手
        await self.db.async_create_brawl(brawl_id, slug, fighter)

        logger.info(f"🆕 新对战 {slug}: 挑战者 {fighter.id} ({species})")
        return {
            "slug": slug,
            "brawl_id": brawl_id,
            "character_id": fighter.id,
        }

    async def join_brawl(self, slug: str, species: str, owner_id: str) -> Dict:
        """
        接受挑战

        Raises:
            BrawlNotFound: 对战不存在或没有挑战者
            BrawlConflict: 挑战已被接受
            InvalidRequest: 接受自己的挑战 / 物种重复 / 物种无效
        """
        self._require(slug=slug, species=species, owner_id=owner_id)

        async with self._brawl_lock(slug):
            state = await self._load_state(slug)

            if not state.participants:
                raise BrawlNotFound("对战不存在")
            if len(state.participants) >= 2:
                raise BrawlConflict("挑战已经被接受了")

            challenger = state.participants[0]
            if challenger.owner_id == owner_id:
                raise InvalidRequest("不能接受自己发起的挑战")
            if challenger.species == species:
                raise InvalidRequest("挑战者已经选择了这个物种")

            challengee = self._create_fighter(species, owner_id)
            await self.db.async_add_character(state.battle_id, challengee)

            state = await self._load_state(slug)
            await self._store_events(state, [self.renderer.event_for_battle_start(state)])

            summary = BattleEngine(state).get_battle_summary().to_dict()
            self.publisher.publish(slug, {
                "type": "challenge_accepted",
                "challenger": challenger.to_dict(),
                "challengee": challengee.to_dict(),
                "brawl_ready": True,
                "game_state": summary,
            })

        logger.info(f"🤝 对战 {slug}: {challengee.id} ({species}) 接受了挑战")
        return {
            "character_id": challengee.id,
            "brawl_id": state.battle_id,
            "game_state": summary,
        }

    # ==================== 对战行动 ====================

    async def attack(self, slug: str, participant_id: str, move_id: str, owner_id: str) -> Dict:
        """
        攻击

        Returns:
            {attack_result, game_state}

        Raises:
            InvalidAction: 行动非法（原因见 reason），状态未改变
        """
        self._require(slug=slug, character_id=participant_id, attack_id=move_id, owner_id=owner_id)

        async with self._brawl_lock(slug):
            state = await self._load_state(slug)
            self._check_owner(state, participant_id, owner_id)

            engine = BattleEngine(state, self.random_source)
            result = engine.execute_attack(participant_id, move_id)

            new_state = engine.get_state()
            await self.db.async_save_battle_state(new_state)
            await self._store_events(new_state, self.renderer.events_for_attack(result, new_state))

            response = {
                "attack_result": result.to_dict(),
                "game_state": engine.get_battle_summary().to_dict(),
            }
            self.publisher.publish(slug, {"type": "attack_result", **response})

        if result.game_over:
            logger.info(f"🏆 对战 {slug} 结束，胜者 {result.winner_id}")
        return response

    async def rest(self, slug: str, participant_id: str, owner_id: str) -> Dict:
        """
        休息

        Returns:
            {rest_result, game_state}
        """
        self._require(slug=slug, character_id=participant_id, owner_id=owner_id)

        async with self._brawl_lock(slug):
            state = await self._load_state(slug)
            self._check_owner(state, participant_id, owner_id)

            engine = BattleEngine(state, self.random_source)
            result = engine.execute_rest(participant_id)

            new_state = engine.get_state()
            await self.db.async_save_battle_state(new_state)
            await self._store_events(new_state, [self.renderer.event_for_rest(result, new_state)])

            response = {
                "rest_result": result.to_dict(),
                "game_state": engine.get_battle_summary().to_dict(),
            }
            self.publisher.publish(slug, {"type": "rest_result", **response})

        return response

    # ==================== 查询 ====================

    async def get_brawl(self, slug: str) -> Dict:
        """获取对战摘要"""
        state = await self._load_state(slug)
        engine = BattleEngine(state)
        return {
            "slug": slug,
            "brawl_id": state.battle_id,
            "game_state": engine.get_battle_summary().to_dict(),
            "status_text": self.renderer.get_battle_status_text(state),
        }

    async def get_available_moves(self, slug: str, participant_id: str) -> List[Dict]:
        """获取角色当前能量足够使用的招式"""
        state = await self._load_state(slug)
        engine = BattleEngine(state)
        return [m.to_dict() for m in engine.get_available_moves(participant_id)]

    async def get_events(self, slug: str) -> List[Dict]:
        """获取战斗日志"""
        brawl = await self.db.async_get_brawl(slug)
        if brawl is None:
            raise BrawlNotFound("对战不存在")
        return await self.db.async_get_battle_events(brawl["id"])

    def list_species(self) -> List[Dict]:
        return self.factory.list_species()
