"""
配置管理器 - 物种、角色模板与服务设置的加载、校验与热更新

- 运行时目录缺少配置时从包内默认配置复制
- 物种与角色模板加载时逐条校验，格式错误的条目跳过并记录警告
- JSON 损坏时标记该配置并继续使用旧缓存，修复文件后重新加载即可恢复
"""

import json
import shutil
import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set
from threading import Lock

from ..log import logger
from .battle.models import Move


class ConfigLoadError(Exception):
    """配置加载错误异常"""
    def __init__(self, config_name: str, filepath: Path, original_error: Exception):
        self.config_name = config_name
        self.filepath = filepath
        self.original_error = original_error
        super().__init__(f"Failed to load config '{config_name}' from {filepath}: {original_error}")


def _check_species(item: Dict) -> Optional[str]:
    if not item.get("name"):
        return "缺少 name"
    return None


def _check_fighter(item: Dict) -> Optional[str]:
    moves = item.get("moves")
    if not isinstance(moves, list) or not moves:
        return "没有任何招式"
    for move in moves:
        try:
            Move.from_dict({"id": "check", **move})
        except (TypeError, ValueError) as e:
            return f"招式格式错误: {e}"
    return None


class ConfigManager:
    """
    对战配置管理器

    缓存结构: {config_name: data}，读取全部走缓存，只有加载会碰磁盘。
    """

    CONFIG_FILES = {
        "species": "species.json",
        "fighters": "fighters.json",
        "settings": "settings.json",
    }

    # {id: {...}} 形式的条目表及其校验函数
    ITEM_CHECKS: Dict[str, Callable[[Dict], Optional[str]]] = {
        "species": _check_species,
        "fighters": _check_fighter,
    }

    def __init__(self, data_path: Path, default_data_path: Path):
        """
        Args:
            data_path: 运行时数据目录 (可读写)
            default_data_path: 默认数据目录 (只读，随包发布)
        """
        self.data_path = Path(data_path)
        self.default_data_path = Path(default_data_path)
        self.data_path.mkdir(parents=True, exist_ok=True)

        self._cache: Dict[str, Dict] = {}
        self._lock = Lock()
        self._corrupted: Set[str] = set()
        self._callbacks: List[Callable] = []

        self._seed_defaults()
        self._load_all()

    def _path(self, config_name: str) -> Path:
        return self.data_path / self.CONFIG_FILES[config_name]

    def _seed_defaults(self):
        """运行时目录缺少的配置从默认目录复制"""
        for config_name, filename in self.CONFIG_FILES.items():
            target = self._path(config_name)
            default = self.default_data_path / f"default_{filename}"
            if not target.exists() and default.exists():
                shutil.copy(default, target)
                logger.info(f"📄 已创建默认配置 {target.name}")

    # ==================== 加载 ====================

    def _load_all(self):
        with self._lock:
            for config_name in self.CONFIG_FILES:
                try:
                    self._load(config_name)
                except ConfigLoadError as e:
                    # 其余配置继续加载
                    logger.error(f"❌ {e}")

    def _load(self, config_name: str) -> Dict:
        """
        加载单个配置到缓存

        Raises:
            ConfigLoadError: 文件损坏且没有旧缓存可用
        """
        filepath = self._path(config_name)
        if not filepath.exists():
            logger.warning(f"⚠️ 配置文件不存在: {filepath}")
            self._cache[config_name] = {}
            return {}

        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("顶层必须是JSON对象")
        except (json.JSONDecodeError, OSError, ValueError) as e:
            self._corrupted.add(config_name)
            logger.error(f"❌ 加载配置文件失败 {filepath}: {e}")
            if config_name not in self._cache:
                raise ConfigLoadError(config_name, filepath, e)
            logger.warning(f"⚠️ 配置 '{config_name}' 已标记为损坏，继续使用旧缓存")
            return self._cache[config_name]

        if config_name in self.ITEM_CHECKS:
            data = self._normalize_items(config_name, data)

        self._corrupted.discard(config_name)
        self._cache[config_name] = data
        logger.info(f"✅ 已加载配置 {config_name}: {len(data)} 项")
        return data

    def _normalize_items(self, config_name: str, data: Dict) -> Dict:
        """补全条目 id 并剔除不合法的条目"""
        check = self.ITEM_CHECKS[config_name]
        valid = {}
        for key, item in data.items():
            if not isinstance(item, dict):
                logger.warning(f"⚠️ {config_name}.{key} 不是对象，已跳过")
                continue
            item.setdefault("id", key)
            problem = check(item)
            if problem:
                logger.warning(f"⚠️ {config_name}.{key} {problem}，已跳过")
                continue
            valid[key] = item
        return valid

    # ==================== 异步接口 ====================

    async def reload_all(self):
        """重新加载全部配置（在线程中读盘，不阻塞事件循环）"""
        await asyncio.to_thread(self._load_all)
        await self._notify()

    def on_update(self, callback: Callable):
        """注册配置变更回调，可以是普通函数或协程函数"""
        self._callbacks.append(callback)

    async def _notify(self):
        for callback in self._callbacks:
            try:
                result = callback()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"配置更新回调执行失败: {e}")

    # ==================== 读取（缓存）====================

    def get(self, config_name: str) -> Dict:
        with self._lock:
            return dict(self._cache.get(config_name, {}))

    def get_item(self, config_name: str, item_id: str) -> Optional[Dict]:
        return self.get(config_name).get(item_id)

    def get_setting(self, section: str, key: str, default: Any = None) -> Any:
        """读取 settings 中某个分组下的设置项"""
        return self.settings.get(section, {}).get(key, default)

    def is_corrupted(self, config_name: str) -> bool:
        return config_name in self._corrupted

    @property
    def species(self) -> Dict:
        return self.get("species")

    @property
    def fighters(self) -> Dict:
        return self.get("fighters")

    @property
    def settings(self) -> Dict:
        return self.get("settings")
