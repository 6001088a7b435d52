"""
Coronary artery disease (CAD) risk scoring.

The score is a fixed additive heuristic over the 13 UCI-style clinical
fields, followed by a small uniform perturbation and clamping:

    probability = clamp(risk_score * 100 + U, 5, 95),   U ~ Uniform[-5, 5)

Rules are declared once in ``CAD_RULES`` (in accumulation order) so the
scorer and the explainer in ``.explain`` always agree. Tiered rules are
first-match-wins: ``age > 65`` and ``age > 55`` never both fire.

Notes
-----
- The perturbation makes ``score_cad`` non-deterministic on purpose. Pass a
  ``numpy.random.Generator`` to pin it; without one a fresh generator is
  created per call so concurrent calls share no state.
- ``restecg`` and ``slope`` are validated but carry no weight.
"""

import logging
import math
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

import numpy as np

from ..config import Settings
from ..schemas import CADRequest, CADResult
from .fields import InputValidationError, validate_cad

logger = logging.getLogger(__name__)

MIN_PROBABILITY = 5.0
MAX_PROBABILITY = 95.0
DIAGNOSIS_THRESHOLD = 50
DEFAULT_NOISE = 5.0

RECOMMEND_CARDIOLOGIST = "We recommend you see a cardiologist for further evaluation."
RECOMMEND_LIFESTYLE = "Your risk is low—maintain a healthy lifestyle."

# A rule maps a record to (description, contribution) when it fires.
Rule = Callable[[CADRequest], Optional[Tuple[str, float]]]


def _above(feature: str, tiers: Tuple[Tuple[float, float], ...]) -> Rule:
    def rule(record: CADRequest) -> Optional[Tuple[str, float]]:
        value = float(getattr(record, feature))
        for threshold, weight in tiers:
            if value > threshold:
                return f"{feature} > {threshold:g}", weight
        return None
    return rule


def _below(feature: str, threshold: float, weight: float) -> Rule:
    def rule(record: CADRequest) -> Optional[Tuple[str, float]]:
        if float(getattr(record, feature)) < threshold:
            return f"{feature} < {threshold:g}", weight
        return None
    return rule


def _coded(feature: str, tiers: Tuple[Tuple[str, float], ...]) -> Rule:
    def rule(record: CADRequest) -> Optional[Tuple[str, float]]:
        code = getattr(record, feature)
        for expected, weight in tiers:
            if code == expected:
                return f"{feature} == {expected}", weight
        return None
    return rule


def _vessels(record: CADRequest) -> Optional[Tuple[str, float]]:
    count = int(record.ca)
    if count > 0:
        return "ca > 0", count * 0.10
    return None


CAD_RULES: Tuple[Tuple[str, Rule], ...] = (
    ("age", _above("age", ((65, 0.15), (55, 0.10), (45, 0.05)))),
    ("sex", _coded("sex", (("1", 0.10),))),
    ("cp", _coded("cp", (("3", 0.20), ("2", 0.15), ("1", 0.10)))),
    ("trestbps", _above("trestbps", ((140, 0.15), (130, 0.08)))),
    ("chol", _above("chol", ((240, 0.15), (200, 0.08)))),
    ("fbs", _coded("fbs", (("1", 0.05),))),
    ("thalach", _below("thalach", 100, 0.10)),
    ("exang", _coded("exang", (("1", 0.15),))),
    ("oldpeak", _above("oldpeak", ((2, 0.15), (1, 0.08)))),
    ("ca", _vessels),
    ("thal", _coded("thal", (("2", 0.15), ("1", 0.08)))),
)


def cad_contributions(record: CADRequest) -> List[Tuple[str, str, float]]:
    """Fired rules for a validated record, in accumulation order.

    Returns
    -------
    list[tuple[str, str, float]]
        ``(feature, rule description, contribution)`` for each rule that fired.
    """
    fired = []
    for feature, rule in CAD_RULES:
        hit = rule(record)
        if hit is not None:
            fired.append((feature, hit[0], hit[1]))
    return fired


def cad_risk_score(record: CADRequest) -> float:
    """Accumulated additive risk score (before noise), starting at 0."""
    score = 0.0
    for _, _, contribution in cad_contributions(record):
        score += contribution
    return score


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def score_cad(
    record: CADRequest,
    rng: Optional[np.random.Generator] = None,
    noise_amplitude: float = DEFAULT_NOISE,
) -> CADResult:
    """Score a validated CAD record.

    Parameters
    ----------
    record:
        A record that passed ``validate_cad``. Not re-validated here.
    rng:
        Source of the uniform perturbation. A fresh, OS-seeded generator is
        used when omitted.
    noise_amplitude:
        Half-width of the perturbation band (``U`` in ``[-a, a)``).

    Returns
    -------
    CADResult
        Rounded probability in [5, 95] and ``has_cad = probability > 50``.
        ``has_cad`` is taken from the rounded value, so a raw 50.3 reads as
        50 and no CAD.
    """
    if rng is None:
        rng = np.random.default_rng()

    risk_score = cad_risk_score(record)
    noise = float(rng.uniform(-noise_amplitude, noise_amplitude)) if noise_amplitude else 0.0
    raw = min(MAX_PROBABILITY, max(MIN_PROBABILITY, risk_score * 100 + noise))
    probability = _round_half_up(raw)
    has_cad = probability > DIAGNOSIS_THRESHOLD

    logger.debug("cad risk_score=%.4f noise=%.4f probability=%d", risk_score, noise, probability)
    return CADResult(
        probability=probability,
        has_cad=has_cad,
        risk_score=risk_score,
        raw_probability=raw,
        recommendation=RECOMMEND_CARDIOLOGIST if has_cad else RECOMMEND_LIFESTYLE,
    )


def noise_generator(settings: Optional[Settings]) -> Optional[np.random.Generator]:
    """Per-call generator honouring ``settings.cad_noise_seed`` (None if unset)."""
    if settings is not None and settings.cad_noise_seed is not None:
        return np.random.default_rng(settings.cad_noise_seed)
    return None


def predict_cad(
    record: Union[CADRequest, Mapping[str, Any]],
    rng: Optional[np.random.Generator] = None,
    settings: Optional[Settings] = None,
) -> CADResult:
    """Validate then score a CAD record.

    Raises
    ------
    InputValidationError
        If validation reports any message; the record is not scored.
    """
    if not isinstance(record, CADRequest):
        record = CADRequest.model_validate(dict(record))

    errors = validate_cad(record)
    if errors:
        logger.info("cad record rejected with %d validation error(s)", len(errors))
        raise InputValidationError(errors)

    amplitude = settings.cad_noise_amplitude if settings is not None else DEFAULT_NOISE
    return score_cad(record, rng=rng if rng is not None else noise_generator(settings), noise_amplitude=amplitude)
