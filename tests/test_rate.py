from say_serif.l2_speech.rate import build_engine_command, rate_for_speed


def test_default_speed_uses_engine_rate():
    assert rate_for_speed(1.0) is None
    assert rate_for_speed(1.25, default_speed=1.25) is None


def test_rate_rounds_half_up():
    assert rate_for_speed(1.5) == 263   # 262.5
    assert rate_for_speed(2.0) == 350
    assert rate_for_speed(0.5) == 88    # 87.5


def test_rate_is_clamped():
    assert rate_for_speed(0.25) == 80   # 43.75
    assert rate_for_speed(4.0) == 600   # 700
    assert rate_for_speed(3.0, ceiling=500) == 500


def test_build_engine_command():
    assert build_engine_command("hi", None) == ["say", "hi"]
    assert build_engine_command("hi", 263) == ["say", "-r", "263", "hi"]
    assert build_engine_command("hi", 200, engine="espeak", rate_flag="-s") == ["espeak", "-s", "200", "hi"]
