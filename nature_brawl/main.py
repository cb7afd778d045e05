"""
自然大乱斗对战服务入口
"""

import argparse
from pathlib import Path
from typing import List, Optional

from .log import logger, setup_logging

# 导入核心模块
from .core import (
    ConfigManager,
    FighterFactory,
    BattleBroadcaster,
)
from .core.battle import RandomSource
from .database import Database
from .handlers import BrawlHandlers
from .web import WebServer


class BrawlApp:
    """对战服务主程序"""

    def __init__(self, data_path: Path, random_source: Optional[RandomSource] = None):
        """
        Args:
            data_path: 运行时数据目录（配置与数据库）
            random_source: 战斗随机数源，测试时可注入固定序列
        """
        # ==================== 路径配置 ====================
        self.package_dir = Path(__file__).parent
        self.default_data_path = self.package_dir / "data"

        self.data_path = Path(data_path)
        self.data_path.mkdir(parents=True, exist_ok=True)

        # ==================== 初始化核心系统 ====================
        self.game_config = ConfigManager(
            data_path=self.data_path,
            default_data_path=self.default_data_path
        )
        self._load_settings()

        self.db = Database(self.data_path / "brawl.db")
        self.broadcaster = BattleBroadcaster(queue_size=self.stream_queue_size)
        self.fighter_factory = FighterFactory(self.game_config, self.default_template)

        # ==================== 初始化请求处理器 ====================
        self.brawl_handlers = BrawlHandlers(
            config_manager=self.game_config,
            db=self.db,
            publisher=self.broadcaster,
            fighter_factory=self.fighter_factory,
            random_source=random_source,
        )

        self.web_server = WebServer(self)
        self.game_config.on_update(self._on_config_update)

        logger.info("🎮 对战服务加载成功！")

    def _load_settings(self):
        """从配置加载服务设置"""
        battle_settings = self.game_config.settings.get("battle", {})
        self.default_template = battle_settings.get("default_template", "lion")
        self.stream_queue_size = int(battle_settings.get("stream_queue_size", 100))

        debug = self.game_config.settings.get("debug", {})
        self.debug_mode = debug.get("enabled", False)
        self.log_level = debug.get("log_level", "INFO")

        if self.debug_mode:
            logger.info("🔧 调试模式已启用")

    def _on_config_update(self):
        """配置热更新后刷新依赖设置的组件"""
        self._load_settings()
        self.fighter_factory.default_template = self.default_template
        self.brawl_handlers.slug_length = int(
            self.game_config.get_setting("battle", "slug_length", self.brawl_handlers.slug_length)
        )
        logger.info("🔄 配置已重新加载")

    async def reload_config(self):
        """重新加载全部配置文件"""
        await self.game_config.reload_all()

    def create_app(self):
        """创建 ASGI 应用"""
        return self.web_server.create_app()

    def run(self):
        """阻塞运行服务"""
        try:
            self.web_server.serve_forever()
        finally:
            self.terminate()

    def terminate(self):
        """退出时清理"""
        self.db.close()
        logger.info("🎮 对战服务已停止")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="自然大乱斗对战服务")
    parser.add_argument("--data-dir", default="./brawl_data", help="运行时数据目录")
    parser.add_argument("--host", help="监听地址（覆盖配置）")
    parser.add_argument("--port", type=int, help="监听端口（覆盖配置）")
    parser.add_argument("--log-level", help="日志级别（覆盖配置）")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    setup_logging(args.log_level or "INFO")

    brawl_app = BrawlApp(Path(args.data_dir))
    if args.log_level is None:
        setup_logging(brawl_app.log_level)
    if args.host:
        brawl_app.web_server.host = args.host
    if args.port:
        brawl_app.web_server.port = args.port

    brawl_app.run()


if __name__ == "__main__":
    main()
