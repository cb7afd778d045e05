import pytest

from nature_brawl.core.battle import Move, ScriptedRandomSource
from nature_brawl.core.battle.damage_calculator import DamageCalculator, round_half_up

from conftest import make_lion, make_tiger


@pytest.mark.parametrize("value, expected", [
    (28.1, 28),
    (28.5, 29),
    (28.49, 28),
    (2.5, 3),
    (1.0, 1),
    (0.5, 1),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_hit_chance_from_speed_difference():
    assert DamageCalculator.hit_chance(make_lion(speed=70), make_tiger(speed=85)) == 77.5
    assert DamageCalculator.hit_chance(make_lion(speed=80), make_tiger(speed=80)) == 85


@pytest.mark.parametrize("attacker_speed, defender_speed, expected", [
    (100, 50, 95),   # +50 -> 110，饱和在上限
    (50, 100, 60),   # -50 -> 60，恰好在下限
    (200, 0, 95),
    (0, 200, 60),
    (70, 50, 95),    # +20 -> 95，恰好在上限
])
def test_hit_chance_saturates_at_bounds(attacker_speed, defender_speed, expected):
    chance = DamageCalculator.hit_chance(make_lion(speed=attacker_speed), make_tiger(speed=defender_speed))
    assert chance == expected


def test_base_damage():
    move = Move(id="roar", energy_cost=20, damage=25, critical_hit_chance=15)
    assert DamageCalculator.base_damage(move, make_lion(attack=75), make_tiger(defense=55)) == 28


def test_base_damage_has_floor_of_one():
    weak = Move(id="tap", energy_cost=1, damage=0)
    damage = DamageCalculator.base_damage(weak, make_lion(attack=0), make_tiger(defense=200))
    assert damage == 1


def test_apply_critical():
    assert DamageCalculator.apply_critical(28) == 56
    assert DamageCalculator.apply_critical(1) == 2


def test_rolls_use_injected_source():
    calculator = DamageCalculator(ScriptedRandomSource.from_percentages(77, 78, 14, 16))
    attacker, defender = make_lion(speed=70), make_tiger(speed=85)
    move = Move(id="roar", energy_cost=20, damage=25, critical_hit_chance=15)

    assert calculator.check_hit(attacker, defender)
    assert not calculator.check_hit(attacker, defender)
    assert calculator.check_critical(move)
    assert not calculator.check_critical(move)


def test_zero_critical_chance_never_crits():
    calculator = DamageCalculator(ScriptedRandomSource([0.0]))
    assert not calculator.check_critical(Move(id="plain", critical_hit_chance=0))
