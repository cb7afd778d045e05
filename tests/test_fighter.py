import pytest

from nature_brawl.core.fighter import FighterFactory, InvalidSpecies


def test_create_from_template(fighter_factory):
    lion = fighter_factory.create("lion", "browser-a")

    assert lion.species == "lion"
    assert lion.owner_id == "browser-a"
    assert (lion.attack, lion.defense, lion.speed, lion.recovery) == (75, 60, 70, 4)
    assert lion.health == lion.max_health == 100
    assert lion.energy == lion.max_energy == 90
    assert lion.moves[0].name == "力量咆哮"
    assert (lion.moves[0].energy_cost, lion.moves[0].damage, lion.moves[0].critical_hit_chance) == (20, 25, 15)


def test_each_fighter_gets_fresh_ids(fighter_factory):
    first = fighter_factory.create("tiger", "a")
    second = fighter_factory.create("tiger", "b")

    assert first.id != second.id
    assert {m.id for m in first.moves}.isdisjoint(m.id for m in second.moves)
    assert len({m.id for m in first.moves}) == len(first.moves)


def test_ids_are_full_length_and_unique_across_many_fighters(fighter_factory):
    ids = set()
    count = 0
    for i in range(500):
        fighter = fighter_factory.create("lion", f"browser-{i}")
        for value in [fighter.id] + [m.id for m in fighter.moves]:
            assert len(value) == 32
            ids.add(value)
            count += 1

    assert len(ids) == count


def test_species_without_template_uses_default(fighter_factory):
    eagle = fighter_factory.create("eagle", "browser-a")

    assert eagle.species == "eagle"
    assert eagle.attack == 75
    assert [m.name for m in eagle.moves][0] == "力量咆哮"


def test_unknown_species(fighter_factory):
    assert not fighter_factory.is_valid_species("dragon")
    with pytest.raises(InvalidSpecies) as exc_info:
        fighter_factory.create("dragon", "browser-a")
    assert exc_info.value.species == "dragon"


def test_template_without_moves_is_rejected(config_manager):
    factory = FighterFactory(config_manager, default_template="missing")
    config_manager._cache["fighters"] = {"lion": {"id": "lion", "attack": 10, "moves": []}}

    with pytest.raises(ValueError):
        factory.create("lion", "browser-a")


def test_list_species(fighter_factory):
    species = fighter_factory.list_species()
    ids = {item["id"] for item in species}

    assert {"lion", "tiger", "bear"} <= ids
    assert all("emoji" in item for item in species)
