import pytest

from farmsim.core.config import GameConfig, parse_game_config
from farmsim.core.models import Action, RainfallLabel
from farmsim.engine.simulate import (
    InvalidTransition,
    apply_action,
    compute_crop_health,
    new_farm_state,
)


def _start(**overrides):
    state = new_farm_state(10)
    if overrides:
        from dataclasses import replace

        state = replace(state, **overrides)
    return state


def test_new_farm_state_defaults():
    state = new_farm_state(5)
    assert state.day == 1
    assert state.money == 20
    assert state.sustainability == 80
    assert state.pest_pressure == 15
    assert state.nitrogen == 45
    assert state.crop_health == 70
    assert state.market_price == 1.0
    assert state.soil_moisture == 55
    assert state.actions_taken_today == ()


def test_new_farm_state_clamps_initial_soil_moisture():
    assert new_farm_state(5, initial_soil_moisture=74.3).soil_moisture == pytest.approx(74.3)
    assert new_farm_state(5, initial_soil_moisture=140.0).soil_moisture == 100.0


def test_new_farm_state_treats_dry_first_day_as_missing():
    assert new_farm_state(5, initial_soil_moisture=0.0).soil_moisture == 55
    assert new_farm_state(5, initial_soil_moisture=None).soil_moisture == 55


def test_irrigate_on_medium_rain(fixed_rng):
    result = apply_action(_start(), Action.IRRIGATE, RainfallLabel.MEDIUM, rng=fixed_rng)
    st = result.state
    assert st.soil_moisture == pytest.approx(71.0)
    assert st.sustainability == pytest.approx(78.0)
    assert st.pest_pressure == pytest.approx(16.5)
    assert st.crop_health == pytest.approx((71 * 0.4 + 45 * 0.4 + 83.5 * 0.2) / 1.5)
    # 20 - 3 irrigation + 2 * price (health between 40 and 70)
    assert st.money == pytest.approx(19.0)
    assert st.actions_taken_today == (Action.IRRIGATE,)
    assert st.day == 1
    assert result.feedback.splitlines() == ["Rain: MEDIUM", "You irrigated, soil moisture increased."]


def test_irrigate_on_dry_day_keeps_sustainability(fixed_rng):
    st = apply_action(_start(), "irrigate", "none", rng=fixed_rng).state
    assert st.sustainability == 80
    assert st.soil_moisture == pytest.approx(58.0)


def test_fertilize_on_high_rain(fixed_rng):
    result = apply_action(_start(), Action.FERTILIZE, RainfallLabel.HIGH, rng=fixed_rng)
    st = result.state
    assert st.nitrogen == pytest.approx(57.0)
    assert st.soil_moisture == pytest.approx(67.0)
    assert st.sustainability == pytest.approx(77.0)
    assert st.money == pytest.approx(20.0)
    assert result.feedback.startswith("Rain: HIGH")


def test_scout_reduces_pests(fixed_rng):
    result = apply_action(_start(), Action.SCOUT, RainfallLabel.LOW, rng=fixed_rng)
    # randint(5, 15) -> 5 with the fixed source; regrowth 0 + (100 - 70) / 20
    assert result.state.pest_pressure == pytest.approx(11.5)
    assert result.state.money == pytest.approx(20 - 1 + 2)
    assert "You scouted and reduced pests by 5." in result.feedback
    assert ("randint", 5, 15) in fixed_rng.calls


def test_wait_feedback_mentions_no_rain(fixed_rng):
    result = apply_action(_start(), Action.WAIT, RainfallLabel.NONE, rng=fixed_rng)
    assert result.feedback.splitlines() == ["Rain: No rain", "You waited."]
    assert result.state.soil_moisture == pytest.approx(48.0)


def test_drip_irrigation_adds_more_moisture(fixed_rng):
    st = apply_action(_start(drip_installed=True), Action.IRRIGATE, RainfallLabel.LOW, rng=fixed_rng).state
    assert st.soil_moisture == pytest.approx(55 - 5 + 14)


def test_healthy_crop_earns_full_revenue(fixed_rng):
    state = _start(soil_moisture=100.0, nitrogen=100.0, pest_pressure=0.0, crop_health=100.0, market_price=1.2)
    st = apply_action(state, Action.WAIT, RainfallLabel.MEDIUM, rng=fixed_rng).state
    assert st.crop_health == pytest.approx(compute_crop_health(100, 100, 0))
    # best-case health is 66.7, below the "healthy" threshold of 70
    assert st.money == pytest.approx(20 + 2 * 1.2)


def test_bounds_hold_at_extremes(fixed_rng):
    dry = _start(soil_moisture=2.0, nitrogen=99.0, pest_pressure=99.0, crop_health=0.0, sustainability=1.0)
    st = apply_action(dry, Action.IRRIGATE, RainfallLabel.HIGH, rng=type(fixed_rng)(randint_value=5, uniform_value=0.05)).state
    for name in ("soil_moisture", "nitrogen", "pest_pressure", "crop_health", "sustainability"):
        assert 0 <= getattr(st, name) <= 100
    assert st.sustainability == 0
    assert st.pest_pressure == 100
    wet = _start(soil_moisture=99.0)
    assert apply_action(wet, Action.IRRIGATE, RainfallLabel.HIGH, rng=fixed_rng).state.soil_moisture == 100


def test_market_price_stays_in_band(seeded_rng):
    state = _start(market_price=1.5)
    for _ in range(50):
        state = apply_action(state, Action.WAIT, RainfallLabel.MEDIUM, rng=seeded_rng).state
        assert 0.8 <= state.market_price <= 1.5


def test_config_overrides_costs(fixed_rng):
    cfg = parse_game_config({"economy": {"irrigation_cost": 5}})
    st = apply_action(_start(), Action.IRRIGATE, RainfallLabel.NONE, rng=fixed_rng, config=cfg).state
    assert st.money == pytest.approx(20 - 5 + 2)


def test_unknown_action_rejected(fixed_rng):
    from farmsim.core.models import ValidationError

    with pytest.raises(ValidationError):
        apply_action(_start(), "harvest", RainfallLabel.LOW, rng=fixed_rng)


def test_action_on_complete_state_raises(fixed_rng):
    done = _start(day=11)
    assert done.is_complete
    with pytest.raises(InvalidTransition):
        apply_action(done, Action.WAIT, RainfallLabel.LOW, rng=fixed_rng, config=GameConfig())
