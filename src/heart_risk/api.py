"""
Heart Risk API.

This module exposes a FastAPI application that serves two heuristic
cardiology scorers: a coronary artery disease (CAD) risk predictor and an
arrhythmia probability classifier over 15 classes.

Endpoints
---------
- GET  `/`                      : Landing info, tools, disclaimer (liveness).
- GET  `/version`               : App version.
- GET  `/schema/{model}`        : Field schema for a form renderer.
- GET  `/arrhythmia/classes`    : Canonical arrhythmia classes and boost tags.
- POST `/cad/validate`          : Validation messages for a CAD record.
- POST `/cad/predict`           : CAD probability (single record or list).
- POST `/cad/explain`           : Fired CAD rules and their contributions.
- POST `/arrhythmia/validate`   : Validation messages for an arrhythmia record.
- POST `/arrhythmia/predict`    : Class distribution (single record or list).
- POST `/arrhythmia/explain`    : Fired deviation rules and active boosts.

Run with ``heart-risk`` or ``python -m heart_risk.api`` (uvicorn on port 8000).

Notes
-----
- Scoring never runs on a record with validation messages: the request is
  answered with HTTP 400 and ``{"errors": [...]}`` listing every message.
- Malformed JSON types are rejected by FastAPI itself (HTTP 422).
- No business logic lives here; the API delegates to ``services``.
"""

import logging
from typing import Any, Callable, Dict, List, Union

from fastapi import Depends, FastAPI, HTTPException

from .config import Settings, get_settings
from .logger import configure_logging, log_usage
from .schemas import (
    ArrhythmiaRequest,
    CADRequest,
    ExplanationResponse,
    ValidationReport,
)
from .services.arrhythmia import ARRHYTHMIA_CLASSES, BOOSTS, predict_arrhythmia
from .services.cad import predict_cad
from .services.explain import summarize
from .services.fields import FIELD_TABLES, InputValidationError, describe_fields, validate_arrhythmia, validate_cad

logger = logging.getLogger(__name__)

DISCLAIMER = (
    "These tools are for educational and informational purposes only. They are not "
    "intended to replace professional medical advice, diagnosis, or treatment. Always "
    "consult with a qualified healthcare provider regarding any medical concerns."
)

TOOLS = [
    {
        "name": "cad",
        "title": "Coronary Artery Disease (CAD) Predictor",
        "description": "Enter demographic and clinical lab values to assess your risk of "
                       "coronary artery disease.",
        "predict": "/cad/predict",
    },
    {
        "name": "arrhythmia",
        "title": "Arrhythmia Probability Classifier",
        "description": "Enter ECG features to estimate your probability across 15 "
                       "arrhythmia classes.",
        "predict": "/arrhythmia/predict",
    },
]

_settings = get_settings()
configure_logging(_settings)

# Instantiate the FastAPI app with descriptive metadata for the OpenAPI schema.
app = FastAPI(
    title=_settings.app_name,
    version=_settings.app_version,
    description="Heuristic CAD risk and arrhythmia class probability scoring",
)


# -----------
# Helpers
# -----------

def _run_batch(
    tool: str,
    data: Union[Any, List[Any]],
    validator: Callable[[Any], List[str]],
    predict: Callable[[Any], Any],
) -> Union[Any, Dict[str, List[Any]]]:
    """Validate every record first, then score them all.

    A single invalid record rejects the whole batch; messages of list
    payloads are prefixed with the record index.
    """
    batch = isinstance(data, list)
    records = data if batch else [data]
    if not records:
        raise HTTPException(status_code=400, detail={"errors": ["Empty payload."]})

    errors: List[str] = []
    for i, record in enumerate(records):
        msgs = validator(record)
        errors += [f"record {i}: {m}" for m in msgs] if batch else msgs
    if errors:
        log_usage(tool, {"records": len(records)}, f"rejected ({len(errors)} errors)")
        raise HTTPException(status_code=400, detail={"errors": errors})

    results = []
    for record in records:
        try:
            result = predict(record)
        except InputValidationError as e:
            raise HTTPException(status_code=400, detail={"errors": e.errors})
        except Exception:
            logger.exception("%s prediction failed", tool)
            raise
        log_usage(tool, record.model_dump(exclude_none=True), result.model_dump(mode="json"))
        results.append(result)

    return {"results": results} if batch else results[0]


def _explain(model: str, record: Any, validator: Callable[[Any], List[str]]) -> ExplanationResponse:
    errors = validator(record)
    if errors:
        raise HTTPException(status_code=400, detail={"errors": errors})
    return ExplanationResponse(**summarize(model, record))


# -----------
# Endpoints
# -----------

@app.get("/")
async def index(settings: Settings = Depends(get_settings)):
    """Landing payload: app identity, the two tools and the medical disclaimer.

    Returns
    -------
    dict
        Keys: ``name``, ``version``, ``status``, ``tools``, ``disclaimer``.
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "OK",
        "tools": TOOLS,
        "disclaimer": DISCLAIMER,
    }


@app.get("/version")
async def version(settings: Settings = Depends(get_settings)):
    """Return the application version."""
    return {"app_version": settings.app_version}


@app.get("/schema/{model}")
async def schema(model: str):
    """Expose the declarative field schema used to render and validate a form.

    Parameters
    ----------
    model:
        ``cad`` or ``arrhythmia``.

    Raises
    ------
    HTTPException
        With status 404 for an unknown model.
    """
    if model not in FIELD_TABLES:
        raise HTTPException(status_code=404, detail=f"Unknown model '{model}'. Available: {list(FIELD_TABLES)}")
    return {"model": model, "fields": describe_fields(model)}


@app.get("/arrhythmia/classes")
async def arrhythmia_classes():
    """Canonical class order with the boosts each class is eligible for."""
    return {
        "classes": [
            {
                "name": c.name,
                "boosts": [
                    {"tag": b.tag, "trigger": b.description, "factor": b.factor}
                    for b in BOOSTS if b.tag in c.tags
                ],
            }
            for c in ARRHYTHMIA_CLASSES
        ],
        "tags": [b.tag for b in BOOSTS],
    }


@app.post("/cad/validate", response_model=ValidationReport)
async def cad_validate(data: CADRequest):
    """Validation messages for a CAD record (always 200)."""
    errors = validate_cad(data)
    return ValidationReport(valid=not errors, errors=errors)


@app.post("/cad/predict")
async def cad_predict(
    data: Union[CADRequest, List[CADRequest]],
    settings: Settings = Depends(get_settings),
):
    """Predict CAD probability for one record or a list of records.

    Returns
    -------
    CADResult | dict
        A ``CADResult`` for a single record, ``{"results": [...]}`` for a list.

    Raises
    ------
    HTTPException
        With status 400 listing every validation message.
    """
    return _run_batch("cad", data, validate_cad, lambda record: predict_cad(record, settings=settings))


@app.post("/cad/explain", response_model=ExplanationResponse)
async def cad_explain(data: CADRequest):
    """Fired CAD rules, largest contribution first; ``total`` is the risk score."""
    return _explain("cad", data, validate_cad)


@app.post("/arrhythmia/validate", response_model=ValidationReport)
async def arrhythmia_validate(data: ArrhythmiaRequest):
    """Validation messages for an arrhythmia record (always 200)."""
    errors = validate_arrhythmia(data)
    return ValidationReport(valid=not errors, errors=errors)


@app.post("/arrhythmia/predict")
async def arrhythmia_predict(data: Union[ArrhythmiaRequest, List[ArrhythmiaRequest]]):
    """Class probability distribution for one record or a list of records.

    Returns
    -------
    ArrhythmiaResult | dict
        An ``ArrhythmiaResult`` for a single record, ``{"results": [...]}``
        for a list.

    Raises
    ------
    HTTPException
        With status 400 listing every validation message.
    """
    return _run_batch("arrhythmia", data, validate_arrhythmia, predict_arrhythmia)


@app.post("/arrhythmia/explain", response_model=ExplanationResponse)
async def arrhythmia_explain(data: ArrhythmiaRequest):
    """Fired deviation rules and active boosts for an arrhythmia record."""
    return _explain("arrhythmia", data, validate_arrhythmia)


# -----------
# Entrypoint
# -----------

def main() -> None:
    """Serve the app with uvicorn."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
