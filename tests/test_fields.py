"""Tests for the declarative field schema and validators."""

from heart_risk.schemas import ArrhythmiaRequest, CADRequest
from heart_risk.services.fields import (
    ARRHYTHMIA_FIELDS,
    CAD_FIELDS,
    describe_fields,
    form_defaults,
    validate_arrhythmia,
    validate_cad,
)


def test_valid_cad_record_has_no_errors(high_risk_cad):
    assert validate_cad(high_risk_cad) == []


def test_missing_sex_is_reported(high_risk_cad):
    record = high_risk_cad.model_copy(update={"sex": None})
    assert validate_cad(record) == ["Sex is required"]


def test_blank_code_counts_as_missing():
    """The form submits an empty string for an unselected dropdown."""
    record = CADRequest(sex="")
    assert record.sex is None
    assert "Sex is required" in validate_cad(record)


def test_empty_cad_record_reports_every_field_in_order():
    errors = validate_cad(CADRequest())
    assert len(errors) == len(CAD_FIELDS)
    assert errors[0] == "Age is required"
    assert errors[-1] == "Thalassemia is required"


def test_cad_range_messages(high_risk_cad):
    record = high_risk_cad.model_copy(update={"age": 121, "trestbps": 79, "chol": 601, "thalach": 221, "oldpeak": 7.5})
    assert validate_cad(record) == [
        "Age must be between 0-120",
        "Resting BP must be between 80-200",
        "Cholesterol must be between 100-600",
        "Max Heart Rate must be between 60-220",
        "ST Depression must be between 0-7",
    ]


def test_bounds_are_inclusive(high_risk_cad):
    low = high_risk_cad.model_copy(update={"age": 0, "trestbps": 80, "chol": 100, "thalach": 60, "oldpeak": 0})
    high = high_risk_cad.model_copy(update={"age": 120, "trestbps": 200, "chol": 600, "thalach": 220, "oldpeak": 7})
    assert validate_cad(low) == []
    assert validate_cad(high) == []


def test_unknown_code_is_rejected(high_risk_cad):
    record = high_risk_cad.model_copy(update={"cp": "5"})
    assert validate_cad(record) == ["Chest Pain Type must be one of 0, 1, 2, 3"]


def test_integer_codes_are_coerced():
    record = CADRequest(sex=1, ca=0, thal=2.0)
    assert (record.sex, record.ca, record.thal) == ("1", "0", "2")


def test_numeric_codes_in_mappings_match_the_request_model(high_risk_cad):
    raw = dict(high_risk_cad.model_dump(), sex=1.0, fbs=True, ca=2)
    assert validate_cad(raw) == []
    assert validate_cad(CADRequest(**raw)) == []
    assert validate_cad(dict(raw, sex=1.5)) == ["Sex must be one of 0, 1"]
    assert validate_cad(dict(raw, sex="  ")) == ["Sex is required"]


def test_validator_is_total_over_odd_inputs():
    """Never raises: mappings, garbage values and foreign objects all yield lists."""
    errors = validate_cad({"age": "abc", "sex": "1"})
    assert "Age must be a number" in errors
    assert "Sex is required" not in errors
    assert len(validate_cad(object())) == len(CAD_FIELDS)
    assert len(validate_cad(None)) == len(CAD_FIELDS)
    assert "Age must be a number" in validate_cad({"age": float("nan")})


def test_valid_arrhythmia_record_has_no_errors(normal_arrhythmia):
    assert validate_arrhythmia(normal_arrhythmia) == []


def test_arrhythmia_range_messages_carry_units(arrhythmia_payload):
    record = ArrhythmiaRequest(**arrhythmia_payload(
        height=119, weight=151, heart_rate=39, qrs_duration=301, pr_interval=99, qt_interval=501,
    ))
    assert validate_arrhythmia(record) == [
        "Height must be between 120-220 cm",
        "Weight must be between 30-150 kg",
        "Heart Rate must be between 40-200 bpm",
        "QRS Duration must be between 40-300 ms",
        "P-R Interval must be between 100-300 ms",
        "Q-T Interval must be between 200-500 ms",
    ]


def test_arrhythmia_flags_are_required(arrhythmia_payload):
    record = ArrhythmiaRequest(**arrhythmia_payload(int_def="", qrsa=None))
    assert validate_arrhythmia(record) == ["Int Def is required", "QRSA is required"]


def test_unbounded_arrhythmia_fields_are_presence_checked_only(arrhythmia_payload):
    """Wave amplitudes have display hints but no validation range."""
    record = ArrhythmiaRequest(**arrhythmia_payload(q_wave=9, r_wave=-50, jj_wave=None))
    assert validate_arrhythmia(record) == ["JJ Wave is required"]


def test_camel_case_aliases_are_accepted(arrhythmia_payload):
    payload = arrhythmia_payload()
    payload["heartRate"] = payload.pop("heart_rate")
    payload["qrsDur"] = payload.pop("qrs_duration")
    record = ArrhythmiaRequest.model_validate(payload)
    assert record.heart_rate == 75
    assert record.qrs_duration == 100


def test_describe_fields_for_renderer():
    fields = {f["name"]: f for f in describe_fields("cad")}
    assert fields["cp"]["choices"][3] == {"value": "3", "label": "Asymptomatic"}
    assert fields["oldpeak"]["min"] == 0 and fields["oldpeak"]["max"] == 7
    assert fields["oldpeak"]["step"] == 0.1

    arr = {f["name"]: f for f in describe_fields("arrhythmia")}
    assert len(arr) == len(ARRHYTHMIA_FIELDS) == 31
    assert (arr["q_wave"]["min"], arr["q_wave"]["max"]) == (-1, 1)
    assert arr["q_wave"]["validated"] is False
    assert arr["heart_rate"]["validated"] is True


def test_form_defaults_match_reset_state():
    defaults = form_defaults("cad")
    assert defaults["age"] == 50
    assert defaults["trestbps"] == 120
    assert defaults["oldpeak"] == 1.0
    assert defaults["sex"] == ""
    assert form_defaults("arrhythmia")["amp_r_wave"] == 10
