import pytest

from app.models.domain import CrowdLevel
from app.services.crowd_index import (
    CrowdIndexCalculator,
    CrowdIndexInput,
    color_for_index,
    crowd_level_for,
)


def test_weights_without_sensors():
    result = CrowdIndexCalculator().calculate(
        CrowdIndexInput(
            google_live=80, google_historic=60, instagram=70, tiktok=50, weather=90, event=30
        )
    )
    # 44 + 6 + 10.5 + 2.5 + 9 + 1.5
    assert result.crowd_index == pytest.approx(73.5)
    assert result.crowd_level == CrowdLevel.BUSY
    assert set(result.breakdown) == {
        "google_live", "google_historic", "instagram", "tiktok", "weather", "event"
    }


def test_sensor_weights_take_over_when_sensor_data_present():
    result = CrowdIndexCalculator().calculate(
        CrowdIndexInput(
            google_live=80,
            google_historic=60,
            instagram=70,
            tiktok=50,
            weather=90,
            event=30,
            sensor=40,
            has_sensors=True,
        )
    )
    # 20 + 24 + 7 + 2.5 + 2.7 + 0.6, historic score ignored
    assert result.crowd_index == pytest.approx(56.8)
    assert "google_historic" not in result.breakdown


def test_silent_sensors_keep_sensor_weights():
    signals = CrowdIndexInput(google_live=100, has_sensors=True, sensor=0.0)
    result = CrowdIndexCalculator().calculate(signals)
    assert result.crowd_index == pytest.approx(30.0)
    assert result.breakdown["sensor"] == 0


def test_sensor_flag_without_score_uses_fallback_weights():
    signals = CrowdIndexInput(google_live=100, has_sensors=True, sensor=None)
    assert CrowdIndexCalculator().calculate(signals).crowd_index == pytest.approx(55.0)


def test_missing_signals_count_as_zero():
    result = CrowdIndexCalculator().calculate(CrowdIndexInput())
    assert result.crowd_index == 0
    assert result.crowd_level == CrowdLevel.EMPTY


def test_index_is_capped_at_100():
    signals = CrowdIndexInput(
        google_live=200, google_historic=200, instagram=200, tiktok=200, weather=200, event=200
    )
    assert CrowdIndexCalculator().calculate(signals).crowd_index == 100


@pytest.mark.parametrize(
    "index, level",
    [
        (0, CrowdLevel.EMPTY),
        (20, CrowdLevel.EMPTY),
        (20.1, CrowdLevel.QUIET),
        (40, CrowdLevel.QUIET),
        (60, CrowdLevel.MODERATE),
        (80, CrowdLevel.BUSY),
        (80.5, CrowdLevel.VERY_BUSY),
        (100, CrowdLevel.VERY_BUSY),
    ],
)
def test_level_boundaries(index, level):
    assert crowd_level_for(index) == level


def test_colors_follow_levels():
    assert color_for_index(10) == "#00FF00"
    assert color_for_index(95) == "#FF0000"
