"""
Arrhythmia class probability scoring.

Pipeline
--------
1) ``deviation_score``: independent additive rules over heart rate, QRS,
   PR and QT intervals, wave amplitudes, age and the two binary flags; capped
   at 0.8.
2) ``normal = max(0.01, 0.85 - deviation)``; the remaining mass is split
   evenly over the 14 abnormal classes.
3) Each abnormal class is multiplied by every boost whose tag it carries and
   whose trigger holds for the record (boosts compound).
4) Shares are normalized to percentages and stably sorted, descending.
5) The most likely class sets the advisory message and icon.

Notes
-----
- The class table is an immutable module-level tuple. Boost tags are declared
  per class and coincide with the case-sensitive words of the class names
  ("Supraventricular" is not "Ventricular").
- Fully deterministic: the same record always yields the same result.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Tuple, Union

import numpy as np

from ..schemas import ArrhythmiaRequest, ArrhythmiaResult, ClassProbability, Icon
from .fields import InputValidationError, validate_arrhythmia

logger = logging.getLogger(__name__)

DEVIATION_CAP = 0.8
NORMAL_BASE = 0.85
NORMAL_FLOOR = 0.01
WARNING_THRESHOLD = 30
NORMAL_THRESHOLD = 50

# Boost tags
BUNDLE_BRANCH_BLOCK = "Bundle Branch Block"
TACHYCARDIA = "Tachycardia"
BRADYCARDIA = "Bradycardia"
ATRIAL = "Atrial"
VENTRICULAR = "Ventricular"


@dataclass(frozen=True)
class Boost:
    """Multiplier applied to tagged classes when ``trigger(record)`` holds."""
    tag: str
    feature: str
    description: str
    factor: float
    trigger: Callable[[ArrhythmiaRequest], bool]


BOOSTS: Tuple[Boost, ...] = (
    Boost(BUNDLE_BRANCH_BLOCK, "qrs_duration", "qrs_duration > 120", 2.0, lambda r: r.qrs_duration > 120),
    Boost(TACHYCARDIA, "heart_rate", "heart_rate > 100", 2.0, lambda r: r.heart_rate > 100),
    Boost(BRADYCARDIA, "heart_rate", "heart_rate < 60", 2.0, lambda r: r.heart_rate < 60),
    Boost(ATRIAL, "pr_interval", "pr_interval > 200", 1.5, lambda r: r.pr_interval > 200),
    Boost(VENTRICULAR, "s_wave", "|s_wave| > 2", 1.5, lambda r: abs(r.s_wave) > 2),
)


@dataclass(frozen=True)
class ArrhythmiaClass:
    name: str
    tags: FrozenSet[str] = frozenset()


def _cls(name: str, *tags: str) -> ArrhythmiaClass:
    return ArrhythmiaClass(name, frozenset(tags))


NORMAL = "Normal"

ARRHYTHMIA_CLASSES: Tuple[ArrhythmiaClass, ...] = (
    _cls(NORMAL),
    _cls("Left Bundle Branch Block", BUNDLE_BRANCH_BLOCK),
    _cls("Right Bundle Branch Block", BUNDLE_BRANCH_BLOCK),
    _cls("Premature Ventricular Contraction", VENTRICULAR),
    _cls("Supraventricular Arrhythmia"),
    _cls("Atrial Fibrillation", ATRIAL),
    _cls("Atrial Flutter", ATRIAL),
    _cls("Ventricular Premature Contraction (PVC)", VENTRICULAR),
    _cls("Ventricular Tachycardia", VENTRICULAR, TACHYCARDIA),
    _cls("Ventricular Fibrillation", VENTRICULAR),
    _cls("Junctional Arrhythmia"),
    _cls("Sinus Tachycardia", TACHYCARDIA),
    _cls("Sinus Bradycardia", BRADYCARDIA),
    _cls("Sinus Arrhythmia"),
    _cls("Atrial Premature Contraction", ATRIAL),
)

CLASS_NAMES: Tuple[str, ...] = tuple(c.name for c in ARRHYTHMIA_CLASSES)

# (description, feature, weight, predicate); every rule that holds adds its weight.
DEVIATION_RULES: Tuple[Tuple[str, str, float, Callable[[ArrhythmiaRequest], bool]], ...] = (
    ("heart_rate < 60 or > 100", "heart_rate", 0.10, lambda r: r.heart_rate < 60 or r.heart_rate > 100),
    ("heart_rate < 50 or > 120", "heart_rate", 0.10, lambda r: r.heart_rate < 50 or r.heart_rate > 120),
    ("qrs_duration < 80 or > 120", "qrs_duration", 0.15, lambda r: r.qrs_duration < 80 or r.qrs_duration > 120),
    ("qrs_duration > 140", "qrs_duration", 0.20, lambda r: r.qrs_duration > 140),
    ("pr_interval < 120 or > 200", "pr_interval", 0.10, lambda r: r.pr_interval < 120 or r.pr_interval > 200),
    ("qt_interval < 350 or > 450", "qt_interval", 0.10, lambda r: r.qt_interval < 350 or r.qt_interval > 450),
    ("qt_interval > 480", "qt_interval", 0.15, lambda r: r.qt_interval > 480),
    ("|q_wave| > 0.5", "q_wave", 0.10, lambda r: abs(r.q_wave) > 0.5),
    ("r_wave < 0.5 or > 5", "r_wave", 0.10, lambda r: r.r_wave < 0.5 or r.r_wave > 5),
    ("|s_wave| > 3", "s_wave", 0.10, lambda r: abs(r.s_wave) > 3),
    ("age > 65", "age", 0.05, lambda r: r.age > 65),
    ("int_def == 1", "int_def", 0.15, lambda r: r.int_def == "1"),
    ("qrsa == 1", "qrsa", 0.10, lambda r: r.qrsa == "1"),
)

MESSAGE_NORMAL = "✅ Your ECG data appears normal."
MESSAGE_WARNING = "⚠️ Your ECG data suggests possible {}. Please consult a cardiologist."
MESSAGE_INFO = "ℹ️ Mixed signals—consider further testing."


def deviation_contributions(record: ArrhythmiaRequest) -> List[Tuple[str, str, float]]:
    """Fired deviation rules as ``(feature, description, weight)``, in rule order."""
    return [(feature, desc, weight) for desc, feature, weight, hit in DEVIATION_RULES if hit(record)]


def deviation_score(record: ArrhythmiaRequest, cap: bool = True) -> float:
    """Sum of fired deviation weights, capped at ``DEVIATION_CAP`` unless ``cap=False``."""
    score = 0.0
    for _, _, weight in deviation_contributions(record):
        score += weight
    return min(score, DEVIATION_CAP) if cap else score


def active_boosts(record: ArrhythmiaRequest) -> Dict[str, Boost]:
    """Boosts whose trigger holds for ``record``, keyed by tag."""
    return {b.tag: b for b in BOOSTS if b.trigger(record)}


def raw_shares(record: ArrhythmiaRequest) -> Tuple[List[float], float]:
    """Unnormalized class shares in canonical order, and the capped deviation.

    Returns
    -------
    tuple[list[float], float]
        ``(shares, deviation)`` where ``shares[0]`` is the Normal share.
    """
    deviation = deviation_score(record)
    normal_prob = max(NORMAL_FLOOR, NORMAL_BASE - deviation)
    abnormal_prob = 1 - normal_prob
    boosts = active_boosts(record)

    shares = []
    for index, cls in enumerate(ARRHYTHMIA_CLASSES):
        if index == 0:
            shares.append(normal_prob)
            continue
        share = abnormal_prob / (len(ARRHYTHMIA_CLASSES) - 1)
        # Compounding follows BOOSTS order.
        for boost in BOOSTS:
            if boost.tag in cls.tags and boost.tag in boosts:
                share *= boost.factor
        shares.append(share)
    return shares, deviation


def _advice(top: ClassProbability) -> Tuple[str, Icon]:
    if top.class_name == NORMAL and top.probability > NORMAL_THRESHOLD:
        return MESSAGE_NORMAL, Icon.NORMAL
    if top.probability > WARNING_THRESHOLD and top.class_name != NORMAL:
        return MESSAGE_WARNING.format(top.class_name), Icon.WARNING
    return MESSAGE_INFO, Icon.INFO


def score_arrhythmia(record: ArrhythmiaRequest) -> ArrhythmiaResult:
    """Score a validated arrhythmia record.

    Parameters
    ----------
    record:
        A record that passed ``validate_arrhythmia``. Not re-validated here.

    Returns
    -------
    ArrhythmiaResult
        All 15 classes as percentages (summing to 100), sorted descending with
        ties kept in canonical order, plus the derived message and icon.
    """
    shares, deviation = raw_shares(record)
    total = sum(shares)
    percent = np.asarray(shares, dtype=float) / total * 100
    order = np.argsort(-percent, kind="stable")

    probabilities = [
        ClassProbability(class_name=CLASS_NAMES[i], probability=float(percent[i])) for i in order
    ]
    most_likely = probabilities[0]
    message, icon = _advice(most_likely)

    logger.debug(
        "arrhythmia deviation=%.3f most_likely=%s (%.2f%%)",
        deviation, most_likely.class_name, most_likely.probability,
    )
    return ArrhythmiaResult(
        probabilities=probabilities,
        most_likely=most_likely,
        message=message,
        icon=icon,
        deviation_score=deviation,
    )


def predict_arrhythmia(record: Union[ArrhythmiaRequest, Mapping[str, Any]]) -> ArrhythmiaResult:
    """Validate then score an arrhythmia record.

    Raises
    ------
    InputValidationError
        If validation reports any message; the record is not scored.
    """
    if not isinstance(record, ArrhythmiaRequest):
        record = ArrhythmiaRequest.model_validate(dict(record))

    errors = validate_arrhythmia(record)
    if errors:
        logger.info("arrhythmia record rejected with %d validation error(s)", len(errors))
        raise InputValidationError(errors)
    return score_arrhythmia(record)
