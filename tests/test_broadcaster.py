import asyncio

from nature_brawl.core.broadcaster import BattleBroadcaster


def test_publish_reaches_all_subscribers(broadcaster):
    first = broadcaster.subscribe("abc")
    second = broadcaster.subscribe("abc")
    other = broadcaster.subscribe("xyz")

    delivered = broadcaster.publish("abc", {"type": "attack_result"})

    assert delivered == 2
    assert first.queue.get_nowait() == {"type": "attack_result"}
    assert second.queue.get_nowait() == {"type": "attack_result"}
    assert other.queue.empty()


def test_publish_without_subscribers(broadcaster):
    assert broadcaster.publish("nobody", {"type": "ping"}) == 0


def test_unsubscribe_removes_empty_room(broadcaster):
    subscriber = broadcaster.subscribe("abc")
    assert broadcaster.subscriber_count("abc") == 1

    broadcaster.unsubscribe("abc", subscriber)

    assert not subscriber.connected
    assert broadcaster.subscriber_count("abc") == 0
    assert "abc" not in broadcaster._rooms
    # 重复取消订阅不报错
    broadcaster.unsubscribe("abc", subscriber)


def test_full_queue_drops_subscriber():
    broadcaster = BattleBroadcaster(queue_size=1)
    slow = broadcaster.subscribe("abc")

    assert broadcaster.publish("abc", {"type": "first"}) == 1
    assert broadcaster.publish("abc", {"type": "second"}) == 0

    assert not slow.connected
    assert broadcaster.subscriber_count("abc") == 0


def test_cleanup_stale(broadcaster):
    alive = broadcaster.subscribe("abc")
    stale = broadcaster.subscribe("abc")
    lonely = broadcaster.subscribe("xyz")
    stale.close()
    lonely.close()

    assert broadcaster.cleanup_stale() == 2
    assert broadcaster.subscriber_count("abc") == 1
    assert "xyz" not in broadcaster._rooms
    assert alive.connected


def test_subscriber_receives_in_event_loop(broadcaster):
    async def scenario():
        subscriber = broadcaster.subscribe("abc")
        broadcaster.publish("abc", {"type": "rest_result"})
        return await asyncio.wait_for(subscriber.queue.get(), timeout=1)

    assert asyncio.run(scenario()) == {"type": "rest_result"}
