from roadguide.speed import SpeedMonitor


def test_speed_above_threshold_raises_warning():
    assert SpeedMonitor.evaluate(80, 75, False) is True


def test_speed_below_threshold_clears_warning():
    assert SpeedMonitor.evaluate(70, 75, True) is False


def test_threshold_itself_is_not_speeding():
    assert SpeedMonitor().evaluate(75, 75, False) is False
