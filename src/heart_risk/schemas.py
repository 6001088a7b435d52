"""
Request and response schemas for the Heart Risk API.

The request models describe the *raw* form records submitted by a client.
Every field is optional at this level: a missing or empty value is not a
parsing error but a validation message produced by
``services.fields.validate_record``. Scoring only ever sees records that
passed that validation.

Notes
-----
- CAD feature names follow the UCI Heart Disease dataset conventions:
    * trestbps: mm Hg (resting blood pressure)
    * chol: mg/dL (serum cholesterol)
    * thalach: bpm (maximum heart rate achieved)
    * oldpeak: ST depression (unitless, relative to rest)
- Categorical codes are strings (``"0"``, ``"1"``, ...), as submitted by the
  form; integers are accepted and coerced, an empty string means "not
  selected".
- Arrhythmia fields are snake_case; the camelCase names used by the form
  (``heartRate``, ``qrsDur``, ``prInt``...) are accepted as aliases.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_code(value: Any) -> Optional[str]:
    """Normalize a categorical code: numbers -> str, blanks -> None."""
    if value is None:
        return None
    if isinstance(value, float) and not value.is_integer():
        return str(value)
    if isinstance(value, (bool, int, float)):
        return str(int(value))
    value = str(value).strip()
    return value or None


class CADRequest(BaseModel):
    """Form record for coronary artery disease risk.

    Attributes
    ----------
    age : float
        Age in years.
    sex : str
        Biological sex code ("0"=female, "1"=male).
    cp : str
        Chest pain type code "0".."3".
    trestbps : float
        Resting blood pressure on admission (mm Hg).
    chol : float
        Serum cholesterol (mg/dL).
    fbs : str
        Fasting blood sugar flag ("1" if >120 mg/dL, else "0").
    restecg : str
        Resting electrocardiographic results "0".."2".
    thalach : float
        Maximum heart rate achieved (bpm).
    exang : str
        Exercise-induced angina ("1"=yes, "0"=no).
    oldpeak : float
        ST depression induced by exercise relative to rest.
    slope : str
        Slope of the peak exercise ST segment "0".."2".
    ca : str
        Number of major vessels colored by fluoroscopy "0".."4".
    thal : str
        Thalassemia "0"=normal, "1"=fixed defect, "2"=reversible defect.
    """
    age: Optional[float] = None
    sex: Optional[str] = None
    cp: Optional[str] = None
    trestbps: Optional[float] = None
    chol: Optional[float] = None
    fbs: Optional[str] = None
    restecg: Optional[str] = None
    thalach: Optional[float] = None
    exang: Optional[str] = None
    oldpeak: Optional[float] = None
    slope: Optional[str] = None
    ca: Optional[str] = None
    thal: Optional[str] = None

    @field_validator("sex", "cp", "fbs", "restecg", "exang", "slope", "ca", "thal", mode="before")
    @classmethod
    def _code(cls, v: Any) -> Optional[str]:
        return _as_code(v)


class ArrhythmiaRequest(BaseModel):
    """Form record of demographic and ECG features for arrhythmia scoring.

    Intervals and durations are in milliseconds, wave amplitudes in mV.
    ``int_def`` and ``qrsa`` are binary codes ("0"/"1").
    """
    model_config = ConfigDict(populate_by_name=True)

    age: Optional[float] = None
    sex: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    heart_rate: Optional[float] = Field(default=None, alias="heartRate")
    qrs_duration: Optional[float] = Field(default=None, alias="qrsDur")
    pr_interval: Optional[float] = Field(default=None, alias="prInt")
    qt_interval: Optional[float] = Field(default=None, alias="qtInt")
    t_interval: Optional[float] = Field(default=None, alias="tInt")
    q_wave: Optional[float] = Field(default=None, alias="qWave")
    r_wave: Optional[float] = Field(default=None, alias="rWave")
    s_wave: Optional[float] = Field(default=None, alias="sWave")
    r_prime_wave: Optional[float] = Field(default=None, alias="rPrimeWave")
    s_prime_wave: Optional[float] = Field(default=None, alias="sPrimeWave")
    amp_r_wave: Optional[float] = Field(default=None, alias="ampRWave")
    jj_wave: Optional[float] = Field(default=None, alias="jjWave")
    int_def: Optional[str] = Field(default=None, alias="intDef")
    qrsa: Optional[str] = None
    qrsta: Optional[float] = None
    # Lead means
    dii_mean: Optional[float] = Field(default=None, alias="diiMean")
    diii_mean: Optional[float] = Field(default=None, alias="diiiMean")
    avr_mean: Optional[float] = Field(default=None, alias="avrMean")
    avl_mean: Optional[float] = Field(default=None, alias="avlMean")
    avf_mean: Optional[float] = Field(default=None, alias="avfMean")
    v1_mean: Optional[float] = Field(default=None, alias="v1Mean")
    # Lead maxima
    dii_max: Optional[float] = Field(default=None, alias="diiMax")
    diii_max: Optional[float] = Field(default=None, alias="diiiMax")
    avr_max: Optional[float] = Field(default=None, alias="avrMax")
    avl_max: Optional[float] = Field(default=None, alias="avlMax")
    avf_max: Optional[float] = Field(default=None, alias="avfMax")
    v1_max: Optional[float] = Field(default=None, alias="v1Max")

    @field_validator("sex", "int_def", "qrsa", mode="before")
    @classmethod
    def _code(cls, v: Any) -> Optional[str]:
        return _as_code(v)


class CADResult(BaseModel):
    """CAD scoring outcome.

    Attributes
    ----------
    probability:
        Displayed probability (percent), rounded half up, within [5, 95].
    has_cad:
        ``probability > 50``.
    risk_score:
        Accumulated additive score before noise and clamping.
    raw_probability:
        Clamped probability before rounding.
    recommendation:
        Advisory text matching ``has_cad``.
    """
    probability: int
    has_cad: bool
    risk_score: float
    raw_probability: float
    recommendation: str


class Icon(str, Enum):
    """Severity tag shown next to the arrhythmia advisory."""

    NORMAL = "normal"
    WARNING = "warning"
    INFO = "info"


class ClassProbability(BaseModel):
    """A single (class, probability) pair, probability in percent."""
    class_name: str
    probability: float


class ArrhythmiaResult(BaseModel):
    """Arrhythmia scoring outcome.

    Attributes
    ----------
    probabilities:
        All 15 classes sorted by descending probability (percent, sums to 100).
    most_likely:
        First entry of ``probabilities``.
    message:
        Advisory text derived from ``most_likely``.
    icon:
        Severity tag derived from ``most_likely``.
    deviation_score:
        Capped deviation score that set the Normal share.
    """
    probabilities: List[ClassProbability]
    most_likely: ClassProbability
    message: str
    icon: Icon
    deviation_score: float


class ValidationReport(BaseModel):
    """Outcome of a validation-only request."""
    valid: bool
    errors: List[str]


class Contribution(BaseModel):
    """One fired rule in an explanation."""
    rule: str
    feature: str
    value: Optional[float] = None
    contribution: float


class ExplanationResponse(BaseModel):
    """Rules that fired for a record, largest contribution first.

    Attributes
    ----------
    total:
        Score the contributions add up to (CAD risk score, or the arrhythmia
        deviation score before the cap).
    capped_total:
        Arrhythmia only: the deviation score after the 0.8 cap.
    contributions:
        Fired rules sorted by contribution, descending.
    """
    model: str
    total: float
    capped_total: Optional[float] = None
    contributions: List[Contribution]
