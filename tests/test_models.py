import logging

import pytest

from minidrone_link.core import FlightParams, PeripheralCandidate


def test_merged_keeps_unspecified_axes() -> None:
    params = FlightParams(roll=10, pitch=20, yaw=30, altitude=40)

    updated = params.merged(pitch=-15, yaw=None)

    assert updated == FlightParams(roll=10, pitch=-15, yaw=30, altitude=40)
    assert params.pitch == 20


def test_merged_clamps_and_warns(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="minidrone_link.core.models")

    updated = FlightParams().merged(roll=250, altitude=-101)

    assert updated.roll == 100
    assert updated.altitude == -100
    assert "roll=250" in caplog.text


def test_merged_rejects_unknown_axis() -> None:
    with pytest.raises(TypeError):
        FlightParams().merged(throttle=5)


def test_as_dict() -> None:
    assert FlightParams(yaw=-3).as_dict() == {"roll": 0, "pitch": 0, "yaw": -3, "altitude": 0}


def test_candidate_handle_excluded_from_equality() -> None:
    first = PeripheralCandidate("Mambo_1", handle=object())
    second = PeripheralCandidate("Mambo_1", handle=object())

    assert first == second
