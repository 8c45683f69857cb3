from geocluster import NumericConfig, get_numeric_config, set_numeric_config


def test_config_round_trip_is_copied():
    previous = get_numeric_config()
    try:
        config = NumericConfig(approx_tol=1e-6, check_degenerate=True)
        set_numeric_config(config)
        config.approx_tol = 1.0

        stored = get_numeric_config()
        assert stored.approx_tol == 1e-6
        assert stored.check_degenerate

        stored.scale_floor = 5.0
        assert get_numeric_config().scale_floor == 0.0
    finally:
        set_numeric_config(previous)


def test_defaults():
    config = NumericConfig()
    assert config.approx_tol == 1e-10
    assert config.scale_floor == 0.0
    assert not config.check_degenerate
