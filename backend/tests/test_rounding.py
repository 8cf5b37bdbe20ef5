from app.core.rounding import round_half_up


def test_round_half_up():
    assert round_half_up(82.5) == 83
    assert round_half_up(94.5) == 95
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4999) == 2
    assert round_half_up(-2.5) == -2
    assert round_half_up(0) == 0
