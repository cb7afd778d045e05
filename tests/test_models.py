import pytest

from nature_brawl.core.battle import (
    ActionCheck,
    BattleState,
    GamePhase,
    InvalidAction,
    Move,
    Participant,
    RejectionReason,
)

from conftest import make_lion, make_state


def test_move_validation():
    with pytest.raises(ValueError):
        Move(id="bad", energy_cost=-1)
    with pytest.raises(ValueError):
        Move(id="bad", damage=-5)
    with pytest.raises(ValueError):
        Move(id="bad", critical_hit_chance=101)


def test_participant_from_dict_defaults_to_full():
    participant = Participant.from_dict({
        "id": "p1",
        "max_health": 120,
        "max_energy": 85,
        "moves": [{"id": "m1", "name": "熊抱", "energy_cost": 30, "damage": 35}],
    })

    assert participant.health == 120
    assert participant.energy == 85
    assert participant.find_move("m1").name == "熊抱"
    assert participant.find_move("missing") is None
    assert not participant.is_defeated


def test_state_dict_round_trip(battle_state):
    data = battle_state.to_dict()

    assert data["phase"] == "active"
    assert data["participants"][0]["moves"][0]["energy_cost"] == 20
    assert BattleState.from_dict(data) == battle_state


def test_state_from_dict_derives_phase():
    data = make_state().to_dict()
    del data["phase"]
    assert BattleState.from_dict(data).phase == GamePhase.ACTIVE

    data["winner_id"] = "lion-1"
    assert BattleState.from_dict(data).phase == GamePhase.FINISHED


@pytest.mark.parametrize("count, winner_id, expected", [
    (0, None, GamePhase.WAITING),
    (1, None, GamePhase.WAITING),
    (2, None, GamePhase.ACTIVE),
    (2, "lion-1", GamePhase.FINISHED),
])
def test_derive_phase(count, winner_id, expected):
    assert BattleState.derive_phase(count, winner_id) == expected


def test_other_participant_requires_member(battle_state):
    assert battle_state.other_participant("lion-1").id == "tiger-1"
    assert battle_state.other_participant("ghost") is None


def test_clone_is_deep(battle_state):
    copy = battle_state.clone()
    copy.participants[0].energy = 0
    assert battle_state.participants[0].energy == 90


def test_single_participant_has_no_opponent():
    state = make_state(participants=[make_lion()], phase=GamePhase.WAITING)
    assert state.other_participant("lion-1") is None


def test_rejection_messages_are_specific():
    messages = {reason.message for reason in RejectionReason}
    assert len(messages) == len(RejectionReason)

    check = ActionCheck.reject(RejectionReason.INSUFFICIENT_ENERGY)
    assert check.to_dict() == {
        "can_use": False,
        "reason": "InsufficientEnergy",
        "message": RejectionReason.INSUFFICIENT_ENERGY.message,
    }


def test_invalid_action_carries_reason():
    error = InvalidAction(RejectionReason.NOT_YOUR_TURN)
    assert error.reason == RejectionReason.NOT_YOUR_TURN
    assert "NotYourTurn" in str(error)
