"""
Declarative field schema and record validation.

Each scoring model declares its form fields once, as an immutable tuple of
``FieldSpec``. The same table drives:

- ``validate_record``: presence / range / choice checks producing the list of
  human-readable messages shown to the user.
- ``describe_fields``: the JSON-ready schema a form renderer consumes
  (labels, bounds, units, choice labels and reset defaults).

Validation is total: it never raises, it always returns a (possibly empty)
list, and it reports every failing field in declaration order.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..schemas import _as_code

NUMERIC = "numeric"
CATEGORICAL = "categorical"


@dataclass(frozen=True)
class FieldSpec:
    """Declaration of a single form field.

    Attributes
    ----------
    name : str
        Attribute name on the request model.
    label : str
        Display label, also used in validation messages.
    kind : str
        ``"numeric"`` or ``"categorical"``.
    low, high : float | None
        Inclusive validation bounds. ``None`` means no range check.
    message_unit : str
        Suffix appended to the range message ("cm", "bpm", ...).
    unit : str
        Display unit for the renderer.
    step : float | None
        Slider step for numeric fields.
    hint : tuple[float, float] | None
        Display-only range for fields that are not range checked.
    choices : tuple[tuple[str, str], ...]
        ``(code, label)`` pairs for categorical fields.
    default : Any
        Value the form resets to. Categorical fields reset to empty.
    """
    name: str
    label: str
    kind: str = NUMERIC
    low: Optional[float] = None
    high: Optional[float] = None
    message_unit: str = ""
    unit: str = ""
    step: Optional[float] = None
    hint: Optional[Tuple[float, float]] = None
    choices: Tuple[Tuple[str, str], ...] = ()
    default: Any = None

    @property
    def codes(self) -> Tuple[str, ...]:
        return tuple(code for code, _ in self.choices)


def _fmt(v: float) -> str:
    return str(int(v)) if float(v).is_integer() else str(v)


BINARY = (("0", "0"), ("1", "1"))
SEX = (("0", "Female"), ("1", "Male"))


CAD_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("age", "Age", low=0, high=120, unit="years", step=1, default=50),
    FieldSpec("sex", "Sex", CATEGORICAL, choices=SEX),
    FieldSpec(
        "cp", "Chest Pain Type", CATEGORICAL,
        choices=(("0", "Typical Angina"), ("1", "Atypical Angina"),
                 ("2", "Non-anginal Pain"), ("3", "Asymptomatic")),
    ),
    FieldSpec("trestbps", "Resting BP", low=80, high=200, unit="mm Hg", step=1, default=120),
    FieldSpec("chol", "Cholesterol", low=100, high=600, unit="mg/dl", step=1, default=200),
    FieldSpec("fbs", "Fasting Blood Sugar", CATEGORICAL, choices=(("0", "False"), ("1", "True"))),
    FieldSpec(
        "restecg", "Resting ECG", CATEGORICAL,
        choices=(("0", "Normal"), ("1", "ST-T Wave Abnormality"),
                 ("2", "Left Ventricular Hypertrophy")),
    ),
    FieldSpec("thalach", "Max Heart Rate", low=60, high=220, unit="bpm", step=1, default=150),
    FieldSpec("exang", "Exercise-induced Angina", CATEGORICAL, choices=(("0", "No"), ("1", "Yes"))),
    FieldSpec("oldpeak", "ST Depression", low=0, high=7, step=0.1, default=1.0),
    FieldSpec(
        "slope", "ST Slope", CATEGORICAL,
        choices=(("0", "Upsloping"), ("1", "Flat"), ("2", "Downsloping")),
    ),
    FieldSpec(
        "ca", "Number of Major Vessels", CATEGORICAL,
        choices=tuple((str(i), str(i)) for i in range(5)),
    ),
    FieldSpec(
        "thal", "Thalassemia", CATEGORICAL,
        choices=(("0", "Normal"), ("1", "Fixed Defect"), ("2", "Reversible Defect")),
    ),
)


def _lead(name: str, label: str, default: float) -> FieldSpec:
    return FieldSpec(name, label, unit="mV", step=0.1, default=default)


ARRHYTHMIA_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("age", "Age", low=0, high=120, unit="years", step=1, default=45),
    FieldSpec("sex", "Sex", CATEGORICAL, choices=SEX),
    FieldSpec("height", "Height", low=120, high=220, message_unit="cm", unit="cm", step=1, default=170),
    FieldSpec("weight", "Weight", low=30, high=150, message_unit="kg", unit="kg", step=1, default=70),
    FieldSpec("heart_rate", "Heart Rate", low=40, high=200, message_unit="bpm", unit="bpm", step=1, default=75),
    FieldSpec("qrs_duration", "QRS Duration", low=40, high=300, message_unit="ms", unit="ms", step=1, default=100),
    FieldSpec("pr_interval", "P-R Interval", low=100, high=300, message_unit="ms", unit="ms", step=1, default=160),
    FieldSpec("qt_interval", "Q-T Interval", low=200, high=500, message_unit="ms", unit="ms", step=1, default=400),
    FieldSpec("t_interval", "T Interval", unit="ms", step=1, default=160),
    FieldSpec("q_wave", "Q Wave", unit="mV", step=0.1, hint=(-1, 1), default=0),
    FieldSpec("r_wave", "R Wave", unit="mV", step=0.1, hint=(-10, 10), default=1),
    FieldSpec("s_wave", "S Wave", unit="mV", step=0.1, hint=(-10, 10), default=0),
    FieldSpec("r_prime_wave", "R' Wave", unit="mV", step=0.1, default=0),
    FieldSpec("s_prime_wave", "S' Wave", unit="mV", step=0.1, default=0),
    FieldSpec("amp_r_wave", "Amplitude R Wave", unit="mV", step=0.1, default=10),
    FieldSpec("jj_wave", "JJ Wave", unit="mV", step=0.1, default=5),
    FieldSpec("int_def", "Int Def", CATEGORICAL, choices=BINARY),
    FieldSpec("qrsa", "QRSA", CATEGORICAL, choices=BINARY),
    FieldSpec("qrsta", "QRSTA", step=0.1, default=20),
    _lead("dii_mean", "DII Mean", 0),
    _lead("diii_mean", "DIII Mean", 0),
    _lead("avr_mean", "AVR Mean", 0),
    _lead("avl_mean", "AVL Mean", 0),
    _lead("avf_mean", "AVF Mean", 0),
    _lead("v1_mean", "V1 Mean", 0),
    _lead("dii_max", "DII Max", 1),
    _lead("diii_max", "DIII Max", 1),
    _lead("avr_max", "AVR Max", 1),
    _lead("avl_max", "AVL Max", 1),
    _lead("avf_max", "AVF Max", 1),
    _lead("v1_max", "V1 Max", 1),
)


FIELD_TABLES: Dict[str, Tuple[FieldSpec, ...]] = {
    "cad": CAD_FIELDS,
    "arrhythmia": ARRHYTHMIA_FIELDS,
}


def _get(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _as_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None if it is not one."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _check(spec: FieldSpec, value: Any) -> Optional[str]:
    if spec.kind == CATEGORICAL:
        code = _as_code(value)
        if code is None:
            return f"{spec.label} is required"
        if code not in spec.codes:
            return f"{spec.label} must be one of {', '.join(spec.codes)}"
        return None

    if value is None or (isinstance(value, str) and not value.strip()):
        return f"{spec.label} is required"
    number = _as_number(value)
    if number is None:
        return f"{spec.label} must be a number"
    if spec.low is not None and spec.high is not None and not (spec.low <= number <= spec.high):
        msg = f"{spec.label} must be between {_fmt(spec.low)}-{_fmt(spec.high)}"
        return f"{msg} {spec.message_unit}" if spec.message_unit else msg
    return None


def validate_record(fields: Tuple[FieldSpec, ...], record: Any) -> List[str]:
    """Validate a raw record against a field table.

    Parameters
    ----------
    fields:
        Field table, e.g. ``CAD_FIELDS``.
    record:
        A request model, a mapping, or any object exposing the field names as
        attributes. Missing attributes count as missing values.

    Returns
    -------
    list[str]
        One message per failing field, in declaration order. Empty when the
        record is valid.
    """
    errors: List[str] = []
    for spec in fields:
        message = _check(spec, _get(record, spec.name))
        if message:
            errors.append(message)
    return errors


def validate_cad(record: Any) -> List[str]:
    """Validate a CAD form record (see ``CAD_FIELDS``)."""
    return validate_record(CAD_FIELDS, record)


def validate_arrhythmia(record: Any) -> List[str]:
    """Validate an arrhythmia form record (see ``ARRHYTHMIA_FIELDS``)."""
    return validate_record(ARRHYTHMIA_FIELDS, record)


def describe_fields(model: str) -> List[Dict[str, Any]]:
    """Return the renderer-facing schema for ``model`` (``cad`` or ``arrhythmia``).

    Raises
    ------
    KeyError
        If ``model`` is not a known field table.
    """
    out: List[Dict[str, Any]] = []
    for spec in FIELD_TABLES[model]:
        item: Dict[str, Any] = {"name": spec.name, "label": spec.label, "kind": spec.kind}
        if spec.kind == CATEGORICAL:
            item["choices"] = [{"value": code, "label": label} for code, label in spec.choices]
            item["default"] = ""
        else:
            lo_hi = (spec.low, spec.high) if spec.low is not None else spec.hint
            item["min"], item["max"] = lo_hi if lo_hi else (None, None)
            item["validated"] = spec.low is not None
            item["step"] = spec.step
            item["unit"] = spec.unit
            item["default"] = spec.default
        out.append(item)
    return out


def form_defaults(model: str) -> Dict[str, Any]:
    """Reset state of the form for ``model``: numeric defaults, empty categoricals."""
    return {item["name"]: item["default"] for item in describe_fields(model)}


class InputValidationError(ValueError):
    """Raised by the ``predict_*`` helpers instead of scoring an invalid record.

    Attributes
    ----------
    errors : list[str]
        Every validation message, in field order.
    """

    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)
