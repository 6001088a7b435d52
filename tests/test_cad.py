"""Tests for the CAD risk scorer."""

import numpy as np
import pytest

from heart_risk.config import Settings
from heart_risk.services import cad
from heart_risk.services.cad import (
    RECOMMEND_CARDIOLOGIST,
    RECOMMEND_LIFESTYLE,
    _round_half_up,
    cad_contributions,
    cad_risk_score,
    predict_cad,
    score_cad,
)
from heart_risk.services.fields import InputValidationError


def test_high_risk_scenario(high_risk_cad, fixed_noise):
    assert cad_risk_score(high_risk_cad) == pytest.approx(1.55)
    for noise in (-5.0, 0.0, 4.999):
        result = score_cad(high_risk_cad, rng=fixed_noise(noise))
        assert result.probability == 95
        assert result.has_cad is True
        assert result.recommendation == RECOMMEND_CARDIOLOGIST


def test_zero_risk_always_clamps_to_floor(low_risk_cad):
    """risk 0 plus noise in [-5, 5) never exceeds the 5% floor."""
    assert cad_risk_score(low_risk_cad) == 0.0
    rng = np.random.default_rng(123)
    for _ in range(200):
        result = score_cad(low_risk_cad, rng=rng)
        assert result.probability == 5
        assert result.has_cad is False
        assert result.recommendation == RECOMMEND_LIFESTYLE


def test_probability_stays_within_noise_band(mid_risk_cad):
    assert cad_risk_score(mid_risk_cad) == pytest.approx(0.41)
    rng = np.random.default_rng(7)
    seen = set()
    for _ in range(300):
        result = score_cad(mid_risk_cad, rng=rng)
        assert 36 <= result.probability <= 46
        assert result.has_cad == (result.probability > 50)
        seen.add(result.probability)
    assert len(seen) > 1


def test_unpinned_calls_draw_fresh_noise(mid_risk_cad):
    results = {score_cad(mid_risk_cad).raw_probability for _ in range(50)}
    assert len(results) > 1


def test_noise_is_drawn_from_symmetric_band(mid_risk_cad, fixed_noise):
    rng = fixed_noise(0.0)
    score_cad(mid_risk_cad, rng=rng)
    assert rng.calls == [(-5.0, 5.0)]


def test_diagnosis_uses_rounded_probability(mid_risk_cad, fixed_noise):
    below = score_cad(mid_risk_cad, rng=fixed_noise(9.4))
    above = score_cad(mid_risk_cad, rng=fixed_noise(9.6))
    assert (below.probability, below.has_cad) == (50, False)
    assert below.raw_probability == pytest.approx(50.4)
    assert (above.probability, above.has_cad) == (51, True)


def test_round_half_up():
    assert _round_half_up(2.5) == 3
    assert _round_half_up(50.5) == 51
    assert _round_half_up(50.49) == 50


@pytest.mark.parametrize(
    "update, feature, weight",
    [
        ({"age": 66}, "age", 0.15),
        ({"age": 65}, "age", 0.10),
        ({"age": 56}, "age", 0.10),
        ({"age": 46}, "age", 0.05),
        ({"cp": "2"}, "cp", 0.15),
        ({"trestbps": 141}, "trestbps", 0.15),
        ({"trestbps": 140}, "trestbps", 0.08),
        ({"chol": 241}, "chol", 0.15),
        ({"chol": 201}, "chol", 0.08),
        ({"thalach": 99}, "thalach", 0.10),
        ({"oldpeak": 2.1}, "oldpeak", 0.15),
        ({"oldpeak": 1.5}, "oldpeak", 0.08),
        ({"ca": "4"}, "ca", 0.40),
        ({"thal": "1"}, "thal", 0.08),
    ],
)
def test_tiered_rules_first_match_wins(low_risk_cad, update, feature, weight):
    record = low_risk_cad.model_copy(update=update)
    fired = cad_contributions(record)
    assert [f for f, _, _ in fired] == [feature]
    assert fired[0][2] == pytest.approx(weight)


def test_unweighted_fields_do_not_change_score(low_risk_cad):
    record = low_risk_cad.model_copy(update={"restecg": "2", "slope": "2"})
    assert cad_risk_score(record) == 0.0


def test_predict_rejects_invalid_record_without_scoring(high_risk_cad, monkeypatch):
    def _boom(*args, **kwargs):
        raise AssertionError("scorer must not run on invalid input")

    monkeypatch.setattr(cad, "score_cad", _boom)
    record = high_risk_cad.model_copy(update={"sex": None, "age": 130})
    with pytest.raises(InputValidationError) as exc:
        predict_cad(record)
    assert "Sex is required" in exc.value.errors
    assert "Age must be between 0-120" in exc.value.errors


def test_predict_accepts_mappings(high_risk_cad, fixed_noise):
    result = predict_cad(high_risk_cad.model_dump(), rng=fixed_noise(0.0))
    assert result.probability == 95


def test_seeded_settings_make_predictions_repeatable(mid_risk_cad):
    settings = Settings(cad_noise_seed=11)
    first = predict_cad(mid_risk_cad, settings=settings)
    second = predict_cad(mid_risk_cad, settings=settings)
    assert first == second


def test_zero_amplitude_disables_noise(mid_risk_cad):
    result = predict_cad(mid_risk_cad, settings=Settings(cad_noise_amplitude=0.0))
    assert result.probability == 41
    assert result.raw_probability == pytest.approx(41.0)
