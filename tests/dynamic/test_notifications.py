from __future__ import annotations

from typing import Any

from trellis.dynamic import Group


def test_created_and_disposed_are_published(ball_group: Group) -> None:
    # Arrange
    events: list[tuple[str, dict[str, Any]]] = []
    ball_group.registry.data_stream.add_listener(
        lambda name, payload: events.append((name, payload))
    )
    created: list[str] = []
    disposed: list[str] = []
    ball_group.element_created.add_listener(lambda e: created.append(e.element_id))
    ball_group.element_disposed.add_listener(lambda e: disposed.append(e.element_id))

    # Act
    ball = ball_group.create_next_element()
    ball_group.dispose_element(ball)

    # Assert
    assert created == ["sim.model.ballGroup.ball_0"]
    assert disposed == ["sim.model.ballGroup.ball_0"]
    assert events == [
        (
            "created",
            {
                "container_id": "sim.model.ballGroup",
                "element_id": "sim.model.ballGroup.ball_0",
                "state": {"x": 0},
            },
        ),
        (
            "disposed",
            {"container_id": "sim.model.ballGroup", "element_id": "sim.model.ballGroup.ball_0"},
        ),
    ]


def test_clear_publishes_most_recent_first(ball_group: Group) -> None:
    disposed: list[str] = []
    ball_group.element_disposed.add_listener(lambda e: disposed.append(e.element_id))
    for _ in range(3):
        ball_group.create_next_element()

    ball_group.clear()

    assert disposed == [
        "sim.model.ballGroup.ball_2",
        "sim.model.ballGroup.ball_1",
        "sim.model.ballGroup.ball_0",
    ]
