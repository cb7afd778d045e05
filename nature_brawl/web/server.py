"""
对战 Web API 服务器
"""

import asyncio
import json
from contextlib import asynccontextmanager, suppress
from typing import TYPE_CHECKING, Dict, Optional
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from ..log import logger
from ..core.battle import InvalidAction
from ..handlers import BrawlError, InvalidRequest

if TYPE_CHECKING:
    from ..main import BrawlApp


class WebServer:
    """对战 Web API 服务器"""

    def __init__(self, brawl_app: "BrawlApp"):
        self.brawl_app = brawl_app
        self.config = brawl_app.game_config
        self.handlers = brawl_app.brawl_handlers
        self.broadcaster = brawl_app.broadcaster

        self.host = self.config.get_setting("web", "host", "127.0.0.1")
        self.port = int(self.config.get_setting("web", "port", 8765))
        self.ping_seconds = float(self.config.get_setting("battle", "stream_ping_seconds", 15))
        self.cleanup_seconds = float(self.config.get_setting("battle", "cleanup_interval_seconds", 30))

        self.app: Optional[FastAPI] = None

    def create_app(self) -> FastAPI:
        """创建FastAPI应用"""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            cleanup_task = asyncio.create_task(self._cleanup_loop())
            try:
                yield
            finally:
                cleanup_task.cancel()
                with suppress(asyncio.CancelledError):
                    await cleanup_task

        app = FastAPI(
            title="自然大乱斗对战服务",
            description="回合制双人对战：发起挑战、攻击、休息与实时推送",
            version="1.0.0",
            docs_url="/api/docs",
            redoc_url=None,
            lifespan=lifespan,
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._register_error_handlers(app)
        self._register_routes(app)

        return app

    def _register_error_handlers(self, app: FastAPI):
        """将业务异常映射为HTTP响应"""

        @app.exception_handler(BrawlError)
        async def handle_brawl_error(request: Request, exc: BrawlError):
            return JSONResponse({"success": False, "message": exc.message}, status_code=exc.status_code)

        @app.exception_handler(InvalidAction)
        async def handle_invalid_action(request: Request, exc: InvalidAction):
            return JSONResponse({
                "success": False,
                "reason": exc.reason.value,
                "message": exc.reason.message,
            }, status_code=400)

        @app.exception_handler(Exception)
        async def handle_unexpected(request: Request, exc: Exception):
            logger.error(f"处理请求 {request.url.path} 失败: {exc}")
            return JSONResponse({"success": False, "message": str(exc)}, status_code=500)

    @staticmethod
    async def _json_body(request: Request) -> Dict:
        """读取JSON请求体"""
        content_type = request.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise InvalidRequest("Content-Type 必须是 application/json")
        try:
            data = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise InvalidRequest("请求体不是有效的JSON")
        if not isinstance(data, dict):
            raise InvalidRequest("请求体必须是JSON对象")
        return data

    def _register_routes(self, app: FastAPI):
        """注册所有路由"""

        # ==================== 基础API ====================

        @app.get("/api/health")
        async def health():
            """健康检查"""
            return JSONResponse({
                "status": "ok",
                "brawls": await self.brawl_app.db.async_get_total_brawls(),
                "timestamp": datetime.now().isoformat(),
            })

        @app.get("/api/species")
        async def get_species():
            """获取可选物种"""
            species = self.handlers.list_species()
            return JSONResponse({"success": True, "data": species, "total": len(species)})

        @app.post("/api/config/reload")
        async def reload_config():
            """重新加载配置文件（物种、角色模板、设置）"""
            await self.brawl_app.reload_config()
            return JSONResponse({
                "success": True,
                "species": len(self.config.species),
                "fighters": len(self.config.fighters),
                "corrupted": [name for name in self.config.CONFIG_FILES if self.config.is_corrupted(name)],
            })

        # ==================== 对战API ====================

        @app.post("/api/brawls")
        async def create_brawl(request: Request):
            """发起挑战"""
            data = await self._json_body(request)
            result = await self.handlers.create_brawl(data.get("species"), data.get("browser_id"))
            return JSONResponse({"success": True, **result}, status_code=201)

        @app.get("/api/brawls/{slug}")
        async def get_brawl(slug: str):
            """获取对战状态"""
            result = await self.handlers.get_brawl(slug)
            return JSONResponse({"success": True, **result})

        @app.post("/api/brawls/{slug}/join")
        async def join_brawl(slug: str, request: Request):
            """接受挑战"""
            data = await self._json_body(request)
            result = await self.handlers.join_brawl(slug, data.get("species"), data.get("browser_id"))
            return JSONResponse({"success": True, "message": "已接受挑战！", **result})

        @app.post("/api/brawls/{slug}/attack")
        async def attack(slug: str, request: Request):
            """攻击"""
            data = await self._json_body(request)
            result = await self.handlers.attack(
                slug, data.get("character_id"), data.get("attack_id"), data.get("browser_id")
            )
            return JSONResponse({"success": True, **result})

        @app.post("/api/brawls/{slug}/rest")
        async def rest(slug: str, request: Request):
            """休息"""
            data = await self._json_body(request)
            result = await self.handlers.rest(slug, data.get("character_id"), data.get("browser_id"))
            return JSONResponse({"success": True, **result})

        @app.get("/api/brawls/{slug}/moves")
        async def get_available_moves(slug: str, character_id: str = None):
            """获取角色当前可用的招式"""
            if not character_id:
                raise InvalidRequest("缺少character_id参数")
            moves = await self.handlers.get_available_moves(slug, character_id)
            return JSONResponse({"success": True, "data": moves})

        @app.get("/api/brawls/{slug}/events")
        async def get_events(slug: str):
            """获取战斗日志"""
            events = await self.handlers.get_events(slug)
            return JSONResponse({"success": True, "events": events})

        @app.get("/api/brawls/{slug}/stream")
        async def stream(slug: str, request: Request):
            """订阅对战实时推送（SSE）"""
            return StreamingResponse(
                self._event_stream(slug, request),
                media_type="text/event-stream",
                headers={
                    "Cache-Control": "no-cache",
                    "Connection": "keep-alive",
                },
            )

    # ==================== 实时推送 ====================

    @staticmethod
    def _format_sse(data: Dict) -> str:
        return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"

    async def _event_stream(self, slug: str, request: Request):
        """SSE 消息流：先发送 connected，之后转发推送并定期发送 ping"""
        subscriber = self.broadcaster.subscribe(slug)
        logger.debug(f"SSE 客户端连接对战 {slug}，当前连接数: {self.broadcaster.subscriber_count(slug)}")
        try:
            yield self._format_sse({
                "type": "connected",
                "timestamp": datetime.now().isoformat(),
                "connection_id": subscriber.subscriber_id,
            })

            while subscriber.connected:
                if await request.is_disconnected():
                    break
                try:
                    event = await asyncio.wait_for(subscriber.queue.get(), timeout=self.ping_seconds)
                except asyncio.TimeoutError:
                    event = {"type": "ping", "timestamp": datetime.now().isoformat()}
                yield self._format_sse(event)
        finally:
            self.broadcaster.unsubscribe(slug, subscriber)
            logger.debug(f"SSE 客户端断开对战 {slug}")

    async def _cleanup_loop(self):
        """定期清理失效连接"""
        while True:
            await asyncio.sleep(self.cleanup_seconds)
            self.broadcaster.cleanup_stale()

    # ==================== 生命周期 ====================

    def serve_forever(self):
        """在当前线程运行服务器（阻塞，命令行入口使用）"""
        self.app = self.create_app()
        logger.info(f"🌐 对战服务启动中: http://{self.host}:{self.port}")
        uvicorn.run(self.app, host=self.host, port=self.port, log_level="warning")
