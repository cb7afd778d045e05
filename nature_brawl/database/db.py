"""
数据库管理模块
- 使用SQLite存储对战、角色、招式与战斗日志
- 支持异步操作（通过 asyncio.to_thread 包装同步操作）
- 自动建表
- 线程本地连接池，避免频繁创建/关闭连接
"""

import sqlite3
import asyncio
import threading
from pathlib import Path
from typing import Dict, List, Optional
from contextlib import contextmanager
from threading import Lock
from datetime import datetime

from ..log import logger
from ..core.battle.models import BattleState, Move, Participant


class ConnectionPool:
    """
    线程本地连接池

    每个线程维护自己的数据库连接，避免：
    1. 频繁创建/关闭连接的开销
    2. 多线程共享连接的安全问题
    """

    def __init__(self, db_path: Path, timeout: float = 30.0):
        self.db_path = str(db_path)
        self.timeout = timeout
        self._local = threading.local()
        self._connections: Dict[int, sqlite3.Connection] = {}
        self._lock = Lock()

    def get_connection(self) -> sqlite3.Connection:
        """获取当前线程的数据库连接（如果不存在则创建）"""
        thread_id = threading.get_ident()
        conn = getattr(self._local, 'connection', None)

        if conn is None:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
            conn.row_factory = sqlite3.Row
            # 启用 WAL 模式，提高并发性能
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")

            self._local.connection = conn
            with self._lock:
                self._connections[thread_id] = conn

            logger.debug(f"[ConnectionPool] 为线程 {thread_id} 创建新数据库连接")

        return conn

    def close_all(self):
        """关闭所有线程的连接（用于程序退出时清理）"""
        with self._lock:
            for thread_id, conn in list(self._connections.items()):
                try:
                    conn.close()
                except sqlite3.Error as e:
                    logger.warning(f"[ConnectionPool] 关闭线程 {thread_id} 连接时出错: {e}")
            self._connections.clear()

        self._local.connection = None
        logger.info("[ConnectionPool] 已关闭所有数据库连接")

    @property
    def active_connections(self) -> int:
        with self._lock:
            return len(self._connections)


class Database:
    """
    对战数据库管理器

    存储内容：
    - 对战（brawls）：当前回合、回合数、胜者
    - 角色（characters）与其招式（attacks）
    - 战斗日志（battle_events）

    特性：
    - 线程安全的连接池
    - 自动事务管理
    - WAL 模式提高并发性能
    """

    def __init__(self, db_path: Path):
        """
        初始化数据库

        Args:
            db_path: 数据库文件路径
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

        self._pool = ConnectionPool(self.db_path)
        self._init_tables()

    def close(self):
        """显式关闭数据库连接池"""
        self._pool.close_all()
        logger.info("📦 数据库连接池已关闭")

    @contextmanager
    def _get_connection(self):
        """
        获取数据库连接（上下文管理器）

        事务在成功时自动提交，异常时自动回滚。
        """
        conn = self._pool.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _init_tables(self):
        """初始化数据库表结构"""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.cursor()

                # 对战表
                cursor.execute('''
                    CREATE TABLE IF NOT EXISTS brawls (
                        id TEXT PRIMARY KEY,
                        slug TEXT NOT NULL UNIQUE,
                        winner_id TEXT,
                        current_player_id TEXT,
                        turn_number INTEGER NOT NULL DEFAULT 1,
                        created_at TEXT,
                        updated_at TEXT
                    )
                ''')

                # 角色表
                cursor.execute('''
                    CREATE TABLE IF NOT EXISTS characters (
                        id TEXT PRIMARY KEY,
                        brawl_id TEXT NOT NULL,
                        owner_id TEXT NOT NULL,
                        species TEXT NOT NULL,
                        position INTEGER NOT NULL DEFAULT 0,
                        attack INTEGER NOT NULL DEFAULT 50,
                        defense INTEGER NOT NULL DEFAULT 50,
                        speed INTEGER NOT NULL DEFAULT 50,
                        energy INTEGER NOT NULL DEFAULT 100,
                        recovery INTEGER NOT NULL DEFAULT 3,
                        health INTEGER NOT NULL DEFAULT 100,
                        max_health INTEGER NOT NULL DEFAULT 100,
                        max_energy INTEGER NOT NULL DEFAULT 100,
                        created_at TEXT,
                        updated_at TEXT,
                        FOREIGN KEY (brawl_id) REFERENCES brawls(id) ON DELETE CASCADE
                    )
                ''')

                # 招式表
                cursor.execute('''
                    CREATE TABLE IF NOT EXISTS attacks (
                        id TEXT PRIMARY KEY,
                        character_id TEXT NOT NULL,
                        position INTEGER NOT NULL DEFAULT 0,
                        name TEXT NOT NULL,
                        description TEXT NOT NULL DEFAULT '',
                        energy_cost INTEGER NOT NULL,
                        damage INTEGER NOT NULL,
                        critical_hit_chance INTEGER NOT NULL DEFAULT 10,
                        created_at TEXT,
                        FOREIGN KEY (character_id) REFERENCES characters(id) ON DELETE CASCADE
                    )
                ''')

                # 战斗日志表
                cursor.execute('''
                    CREATE TABLE IF NOT EXISTS battle_events (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        brawl_id TEXT NOT NULL,
                        turn_number INTEGER NOT NULL,
                        event_type TEXT NOT NULL,
                        message TEXT NOT NULL,
                        created_at TEXT,
                        FOREIGN KEY (brawl_id) REFERENCES brawls(id) ON DELETE CASCADE
                    )
                ''')

                cursor.execute('CREATE INDEX IF NOT EXISTS idx_characters_brawl ON characters(brawl_id)')
                cursor.execute('CREATE INDEX IF NOT EXISTS idx_attacks_character ON attacks(character_id)')
                cursor.execute('CREATE INDEX IF NOT EXISTS idx_events_brawl ON battle_events(brawl_id)')

    # ==================== 对战 ====================

    def create_brawl(self, brawl_id: str, slug: str, challenger: Participant) -> Dict:
        """
        创建对战并写入挑战者

        对战、挑战者角色、招式与先手在同一事务中写入，任一步失败都不会留下没有角色的对战。
        """
        now = datetime.now().isoformat()
        with self._get_connection() as conn:
            conn.execute('''
                INSERT INTO brawls (id, slug, current_player_id, turn_number, created_at, updated_at)
                VALUES (?, ?, ?, 1, ?, ?)
            ''', (brawl_id, slug, challenger.id, now, now))
            self._insert_character(conn, brawl_id, challenger, 0, now)

        return self.get_brawl(slug)

    def get_brawl(self, slug: str) -> Optional[Dict]:
        """按 slug 获取对战基础信息"""
        with self._get_connection() as conn:
            row = conn.execute('SELECT * FROM brawls WHERE slug = ?', (slug,)).fetchone()
            return dict(row) if row else None

    def slug_exists(self, slug: str) -> bool:
        with self._get_connection() as conn:
            row = conn.execute('SELECT 1 FROM brawls WHERE slug = ?', (slug,)).fetchone()
            return row is not None

    def get_total_brawls(self) -> int:
        with self._get_connection() as conn:
            return conn.execute('SELECT COUNT(*) FROM brawls').fetchone()[0]

    # ==================== 角色 ====================

    def add_character(self, brawl_id: str, participant: Participant) -> None:
        """添加角色及其招式（同一事务）"""
        now = datetime.now().isoformat()
        with self._get_connection() as conn:
            position = conn.execute(
                'SELECT COUNT(*) FROM characters WHERE brawl_id = ?', (brawl_id,)
            ).fetchone()[0]
            self._insert_character(conn, brawl_id, participant, position, now)

    @staticmethod
    def _insert_character(conn: sqlite3.Connection, brawl_id: str, participant: Participant,
                          position: int, now: str) -> None:
        conn.execute('''
            INSERT INTO characters (
                id, brawl_id, owner_id, species, position,
                attack, defense, speed, energy, recovery,
                health, max_health, max_energy, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            participant.id, brawl_id, participant.owner_id, participant.species, position,
            participant.attack, participant.defense, participant.speed,
            participant.energy, participant.recovery,
            participant.health, participant.max_health, participant.max_energy,
            now, now,
        ))

        conn.executemany('''
            INSERT INTO attacks (
                id, character_id, position, name, description,
                energy_cost, damage, critical_hit_chance, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', [
            (
                move.id, participant.id, i, move.name, move.description,
                move.energy_cost, move.damage, move.critical_hit_chance, now,
            )
            for i, move in enumerate(participant.moves)
        ])

    def get_characters(self, brawl_id: str) -> List[Participant]:
        """获取对战中的角色（按加入顺序，挑战者在前）"""
        with self._get_connection() as conn:
            rows = conn.execute('''
                SELECT * FROM characters WHERE brawl_id = ? ORDER BY position
            ''', (brawl_id,)).fetchall()

            participants = []
            for row in rows:
                move_rows = conn.execute('''
                    SELECT * FROM attacks WHERE character_id = ? ORDER BY position
                ''', (row['id'],)).fetchall()

                participants.append(Participant(
                    id=row['id'],
                    owner_id=row['owner_id'],
                    species=row['species'],
                    attack=row['attack'],
                    defense=row['defense'],
                    speed=row['speed'],
                    recovery=row['recovery'],
                    health=row['health'],
                    max_health=row['max_health'],
                    energy=row['energy'],
                    max_energy=row['max_energy'],
                    moves=[
                        Move(
                            id=m['id'],
                            name=m['name'],
                            description=m['description'],
                            energy_cost=m['energy_cost'],
                            damage=m['damage'],
                            critical_hit_chance=m['critical_hit_chance'],
                        )
                        for m in move_rows
                    ],
                ))
            return participants

    # ==================== 对战状态 ====================

    def load_battle_state(self, slug: str) -> Optional[BattleState]:
        """
        读取对战状态快照

        Returns:
            BattleState，对战不存在时返回 None
        """
        brawl = self.get_brawl(slug)
        if brawl is None:
            return None

        participants = self.get_characters(brawl['id'])
        winner_id = brawl['winner_id']

        return BattleState(
            battle_id=brawl['id'],
            participants=participants,
            current_turn_participant_id=brawl['current_player_id'],
            turn_number=brawl['turn_number'],
            phase=BattleState.derive_phase(len(participants), winner_id),
            winner_id=winner_id,
        )

    def save_battle_state(self, state: BattleState) -> bool:
        """
        保存战斗引擎返回的新状态

        角色的生命/能量与对战的回合信息在同一事务中写入。
        """
        now = datetime.now().isoformat()
        with self._get_connection() as conn:
            for participant in state.participants:
                conn.execute('''
                    UPDATE characters SET health = ?, energy = ?, updated_at = ?
                    WHERE id = ? AND brawl_id = ?
                ''', (participant.health, participant.energy, now, participant.id, state.battle_id))

            cursor = conn.execute('''
                UPDATE brawls
                SET current_player_id = ?, turn_number = ?, winner_id = ?, updated_at = ?
                WHERE id = ?
            ''', (
                state.current_turn_participant_id, state.turn_number,
                state.winner_id, now, state.battle_id,
            ))
            return cursor.rowcount > 0

    # ==================== 战斗日志 ====================

    def store_battle_event(self, brawl_id: str, turn_number: int,
                           event_type: str, message: str) -> bool:
        """
        记录战斗事件

        写入失败只记录日志，不影响对战流程。
        """
        try:
            with self._get_connection() as conn:
                conn.execute('''
                    INSERT INTO battle_events (brawl_id, turn_number, event_type, message, created_at)
                    VALUES (?, ?, ?, ?, ?)
                ''', (brawl_id, turn_number, event_type, message, datetime.now().isoformat()))
            return True
        except sqlite3.Error as e:
            logger.error(f"记录战斗事件失败 brawl={brawl_id}: {e}")
            return False

    def get_battle_events(self, brawl_id: str) -> List[Dict]:
        """获取战斗日志（按时间顺序）"""
        with self._get_connection() as conn:
            rows = conn.execute('''
                SELECT id, turn_number, event_type, message, created_at
                FROM battle_events WHERE brawl_id = ? ORDER BY id
            ''', (brawl_id,)).fetchall()
            return [dict(row) for row in rows]

    # ==================== 异步方法 ====================

    async def async_create_brawl(self, brawl_id: str, slug: str, challenger: Participant) -> Dict:
        return await asyncio.to_thread(self.create_brawl, brawl_id, slug, challenger)

    async def async_get_brawl(self, slug: str) -> Optional[Dict]:
        return await asyncio.to_thread(self.get_brawl, slug)

    async def async_slug_exists(self, slug: str) -> bool:
        return await asyncio.to_thread(self.slug_exists, slug)

    async def async_add_character(self, brawl_id: str, participant: Participant) -> None:
        return await asyncio.to_thread(self.add_character, brawl_id, participant)

    async def async_load_battle_state(self, slug: str) -> Optional[BattleState]:
        return await asyncio.to_thread(self.load_battle_state, slug)

    async def async_save_battle_state(self, state: BattleState) -> bool:
        return await asyncio.to_thread(self.save_battle_state, state)

    async def async_store_battle_event(self, brawl_id: str, turn_number: int,
                                       event_type: str, message: str) -> bool:
        return await asyncio.to_thread(self.store_battle_event, brawl_id, turn_number, event_type, message)

    async def async_get_battle_events(self, brawl_id: str) -> List[Dict]:
        return await asyncio.to_thread(self.get_battle_events, brawl_id)

    async def async_get_total_brawls(self) -> int:
        return await asyncio.to_thread(self.get_total_brawls)
