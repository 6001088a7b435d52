"""Shared fixtures for scoring and API tests."""

import pytest

from heart_risk.schemas import ArrhythmiaRequest, CADRequest


class FixedNoise:
    """Stand-in for ``numpy.random.Generator`` returning a pinned draw."""

    def __init__(self, value: float) -> None:
        self.value = value
        self.calls = []

    def uniform(self, low, high):
        self.calls.append((low, high))
        return self.value


@pytest.fixture()
def fixed_noise():
    """Factory for a generator stub whose ``uniform`` returns the given value."""
    return FixedNoise


@pytest.fixture()
def high_risk_cad() -> CADRequest:
    """Every weighted CAD rule fires; risk score 1.55."""
    return CADRequest(
        age=70, sex="1", cp="3", trestbps=150, chol=250, fbs="1", restecg="0",
        thalach=90, exang="1", oldpeak=3, slope="1", ca="2", thal="2",
    )


@pytest.fixture()
def low_risk_cad() -> CADRequest:
    """No weighted CAD rule fires; risk score 0."""
    return CADRequest(
        age=30, sex="0", cp="0", trestbps=120, chol=180, fbs="0", restecg="0",
        thalach=150, exang="0", oldpeak=0.5, slope="0", ca="0", thal="0",
    )


@pytest.fixture()
def mid_risk_cad() -> CADRequest:
    """age>45, male, atypical angina, BP>130, chol>200: risk score 0.41."""
    return CADRequest(
        age=50, sex="1", cp="1", trestbps=135, chol=210, fbs="0", restecg="1",
        thalach=150, exang="0", oldpeak=0.5, slope="0", ca="0", thal="0",
    )


def _arrhythmia_payload(**overrides):
    payload = {
        "age": 45, "sex": "1", "height": 170, "weight": 70, "heart_rate": 75,
        "qrs_duration": 100, "pr_interval": 160, "qt_interval": 400, "t_interval": 160,
        "q_wave": 0, "r_wave": 1, "s_wave": 0, "r_prime_wave": 0, "s_prime_wave": 0,
        "amp_r_wave": 10, "jj_wave": 5, "int_def": "0", "qrsa": "0", "qrsta": 20,
        "dii_mean": 0, "diii_mean": 0, "avr_mean": 0, "avl_mean": 0, "avf_mean": 0, "v1_mean": 0,
        "dii_max": 1, "diii_max": 1, "avr_max": 1, "avl_max": 1, "avf_max": 1, "v1_max": 1,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def arrhythmia_payload():
    """Factory for a valid arrhythmia payload (form defaults) with overrides."""
    return _arrhythmia_payload


@pytest.fixture()
def normal_arrhythmia() -> ArrhythmiaRequest:
    """All fields at normal midpoints; deviation score 0."""
    return ArrhythmiaRequest(**_arrhythmia_payload())


@pytest.fixture()
def severe_arrhythmia() -> ArrhythmiaRequest:
    """Every deviation rule fires (uncapped 1.5) and four boosts are active."""
    return ArrhythmiaRequest(**_arrhythmia_payload(
        age=70, heart_rate=150, qrs_duration=160, pr_interval=250, qt_interval=490,
        q_wave=1, r_wave=6, s_wave=4, int_def="1", qrsa="1",
    ))
