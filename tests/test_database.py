import asyncio
import sqlite3
import threading

import pytest

from nature_brawl.core.battle import GamePhase

from conftest import make_lion, make_tiger


def _setup_brawl(db, with_challengee=True):
    db.create_brawl("brawl-1", "slug1", make_lion())
    if with_challengee:
        db.add_character("brawl-1", make_tiger())


def test_create_and_get_brawl(db):
    brawl = db.create_brawl("brawl-1", "slug1", make_lion())

    assert brawl["id"] == "brawl-1"
    assert brawl["current_player_id"] == "lion-1"
    assert brawl["turn_number"] == 1
    assert brawl["winner_id"] is None
    assert db.slug_exists("slug1")
    assert not db.slug_exists("other")
    assert db.get_brawl("other") is None
    assert db.get_total_brawls() == 1


def test_characters_keep_join_order_and_moves(db):
    _setup_brawl(db)

    characters = db.get_characters("brawl-1")

    assert [c.id for c in characters] == ["lion-1", "tiger-1"]
    assert [m.id for m in characters[0].moves] == ["roar", "pounce"]
    assert characters[0] == make_lion()


def test_load_waiting_state(db):
    _setup_brawl(db, with_challengee=False)

    state = db.load_battle_state("slug1")

    assert state.phase == GamePhase.WAITING
    assert state.current_turn_participant_id == "lion-1"
    assert len(state.participants) == 1


def test_load_missing_state(db):
    assert db.load_battle_state("missing") is None


def test_save_and_reload_state(db):
    _setup_brawl(db)
    state = db.load_battle_state("slug1")
    assert state.phase == GamePhase.ACTIVE

    state.participants[1].health = 0
    state.participants[0].energy = 70
    state.turn_number = 3
    state.winner_id = "lion-1"
    state.current_turn_participant_id = None
    assert db.save_battle_state(state)

    reloaded = db.load_battle_state("slug1")
    assert reloaded.phase == GamePhase.FINISHED
    assert reloaded.winner_id == "lion-1"
    assert reloaded.turn_number == 3
    assert reloaded.current_turn_participant_id is None
    assert reloaded.find_participant("tiger-1").health == 0
    assert reloaded.find_participant("lion-1").energy == 70


def test_battle_events_in_order(db):
    _setup_brawl(db)

    assert db.store_battle_event("brawl-1", 1, "info", "对战开始！")
    assert db.store_battle_event("brawl-1", 1, "attack-hit", "命中")

    events = db.get_battle_events("brawl-1")
    assert [e["event_type"] for e in events] == ["info", "attack-hit"]
    assert events[0]["message"] == "对战开始！"
    assert db.get_battle_events("other") == []


def test_store_event_failure_is_logged_not_raised(db):
    # 外键约束失败
    assert not db.store_battle_event("missing-brawl", 1, "info", "x")


def test_async_wrappers(db):
    async def scenario():
        await db.async_create_brawl("brawl-1", "slug1", make_lion())
        await db.async_add_character("brawl-1", make_tiger())
        return await db.async_load_battle_state("slug1")

    state = asyncio.run(scenario())

    assert state.current_turn_participant_id == "lion-1"
    assert state.phase == GamePhase.ACTIVE
    assert asyncio.run(db.async_get_total_brawls()) == 1


def test_connection_per_thread(db):
    db.get_total_brawls()

    worker = threading.Thread(target=db.get_total_brawls)
    worker.start()
    worker.join()

    assert db._pool.active_connections == 2


def test_create_brawl_is_atomic(db):
    _setup_brawl(db, with_challengee=False)

    # 挑战者ID与已有角色冲突，对战记录也不应写入
    with pytest.raises(sqlite3.IntegrityError):
        db.create_brawl("brawl-2", "slug2", make_lion(owner_id="browser-c"))

    assert not db.slug_exists("slug2")
    assert db.get_total_brawls() == 1
    assert db.get_characters("brawl-2") == []


def test_create_brawl_rolls_back_on_duplicate_move_ids(db):
    lion = make_lion(moves=[make_lion().moves[0], make_lion().moves[0]])

    with pytest.raises(sqlite3.IntegrityError):
        db.create_brawl("brawl-1", "slug1", lion)

    assert db.get_total_brawls() == 0
    assert db.load_battle_state("slug1") is None
