import pytest

from nature_brawl.core.battle import ScriptedRandomSource, SystemRandomSource


def test_system_source_in_unit_interval():
    source = SystemRandomSource()
    for _ in range(1000):
        value = source.next()
        assert 0 <= value < 1


def test_system_source_seed_is_replayable():
    first = SystemRandomSource(42)
    second = SystemRandomSource(42)
    assert [first.next() for _ in range(10)] == [second.next() for _ in range(10)]


def test_scripted_source_sequence():
    source = ScriptedRandomSource.from_percentages(50, 90)

    assert source.remaining == 2
    assert source.next() == 0.5
    assert source.next() == 0.9
    assert source.remaining == 0

    with pytest.raises(IndexError):
        source.next()


@pytest.mark.parametrize("bad_value", [1.0, -0.1, 2])
def test_scripted_source_rejects_out_of_range(bad_value):
    with pytest.raises(ValueError):
        ScriptedRandomSource([bad_value])
