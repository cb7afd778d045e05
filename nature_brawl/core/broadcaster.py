"""
对战消息广播器
- 按对战维护订阅者（SSE 连接）的消息队列
- 将行动结果推送给观看同一场对战的所有客户端
- 定期清理已断开的订阅者和空房间

战斗引擎不知道任何连接的存在，只有服务层会调用 publish()。
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Protocol

from ..log import logger


class Publisher(Protocol):
    """推送接口"""

    def publish(self, battle_id: str, event: Dict[str, Any]) -> int:
        ...


@dataclass
class Subscriber:
    """一个订阅者（通常对应一条 SSE 连接）"""
    queue: "asyncio.Queue[Dict[str, Any]]"
    subscriber_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    connected: bool = True
    created_at: float = field(default_factory=time.time)

    def close(self) -> None:
        self.connected = False


class BattleBroadcaster:
    """
    对战广播器

    存储结构: {battle_id: {subscriber_id: Subscriber}}
    """

    DEFAULT_QUEUE_SIZE = 100

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        """
        初始化广播器

        Args:
            queue_size: 每个订阅者的队列上限，满了视为连接失效
        """
        self.queue_size = queue_size
        self._rooms: Dict[str, Dict[str, Subscriber]] = {}

    def subscribe(self, battle_id: str) -> Subscriber:
        """订阅一场对战"""
        subscriber = Subscriber(queue=asyncio.Queue(maxsize=self.queue_size))
        room = self._rooms.setdefault(battle_id, {})
        room[subscriber.subscriber_id] = subscriber
        logger.debug(
            f"[Broadcaster] 客户端 {subscriber.subscriber_id} 订阅对战 {battle_id}，"
            f"当前连接数: {len(room)}"
        )
        return subscriber

    def unsubscribe(self, battle_id: str, subscriber: Subscriber) -> None:
        """取消订阅，房间为空时一并移除"""
        subscriber.close()
        room = self._rooms.get(battle_id)
        if room is None:
            return
        room.pop(subscriber.subscriber_id, None)
        if not room:
            del self._rooms[battle_id]
        logger.debug(f"[Broadcaster] 客户端 {subscriber.subscriber_id} 离开对战 {battle_id}")

    def subscriber_count(self, battle_id: str) -> int:
        return len(self._rooms.get(battle_id, {}))

    def publish(self, battle_id: str, event: Dict[str, Any]) -> int:
        """
        向对战的所有订阅者推送消息

        队列已满的订阅者会被标记为断开并移除，不会阻塞推送方。

        Returns:
            成功投递的订阅者数量
        """
        room = self._rooms.get(battle_id)
        if not room:
            logger.debug(f"[Broadcaster] 对战 {battle_id} 没有订阅者")
            return 0

        delivered = 0
        failed = []
        for subscriber in room.values():
            if not subscriber.connected:
                failed.append(subscriber)
                continue
            try:
                subscriber.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"[Broadcaster] 客户端 {subscriber.subscriber_id} 队列已满，断开连接")
                subscriber.close()
                failed.append(subscriber)

        for subscriber in failed:
            room.pop(subscriber.subscriber_id, None)
        if not room:
            del self._rooms[battle_id]

        logger.debug(f"[Broadcaster] 对战 {battle_id} 推送 {event.get('type')} 给 {delivered} 个客户端")
        return delivered

    def cleanup_stale(self) -> int:
        """
        清理所有已断开的订阅者

        Returns:
            清理的订阅者数
        """
        count = 0
        empty_rooms = []

        for battle_id, room in self._rooms.items():
            stale = [sid for sid, sub in room.items() if not sub.connected]
            for sid in stale:
                del room[sid]
                count += 1
            if not room:
                empty_rooms.append(battle_id)

        for battle_id in empty_rooms:
            del self._rooms[battle_id]

        if count > 0:
            logger.info(f"[Broadcaster] 清理了 {count} 个失效连接")

        return count
