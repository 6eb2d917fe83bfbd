from conftest import ref
from volley_planner.app.services.statistics_service import (
    NO_POSITION,
    PositionBucket,
    attendance_summary,
    position_statistics,
)


def test_position_statistics_counts_and_percentages(make_event):
    event = make_event(attending_players=[
        ref("anna", "Libero"),
        ref("bea", "Libero"),
        ref("carla", "Außen"),
        ref("dora"),
    ])

    stats = position_statistics(event)

    assert stats == {
        "Libero": PositionBucket(2, 50),
        "Außen": PositionBucket(1, 25),
        NO_POSITION: PositionBucket(1, 25),
    }
    assert list(stats) == ["Libero", "Außen", NO_POSITION]


def test_position_statistics_empty_event(make_event):
    assert position_statistics(make_event()) == {}


def test_percent_rounds_half_up(make_event):
    players = [ref(f"p{i}", "Mitte") for i in range(1)] + [ref(f"q{i}", "Zuspiel") for i in range(7)]

    stats = position_statistics(make_event(attending_players=players))

    assert stats["Mitte"] == PositionBucket(1, 13)
    assert stats["Zuspiel"] == PositionBucket(7, 88)


def test_attendance_summary(make_event):
    event = make_event(
        invited_players=[ref("anna")],
        attending_players=[ref("bea")],
        declined_players=[ref("carla")],
    )

    summary = attendance_summary(event)

    assert summary["invited"] == 1
    assert summary["attending"] == 1
    assert summary["declined"] == 1
    assert summary["pending"] == 1
