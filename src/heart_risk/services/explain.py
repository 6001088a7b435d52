# src/heart_risk/services/explain.py
"""
Explainability utilities for the two heuristic scorers.

Both scorers are additive, so an exact explanation is simply the list of
rules that fired and what each one added:

1) CAD contributions
   - One row per fired rule of ``cad.CAD_RULES``; ``total`` is the risk score
     before noise (the noise itself is not part of the explanation).

2) Arrhythmia contributions
   - One row per fired deviation rule, with both the raw total and the total
     after the 0.8 cap.
   - Active class boosts are reported as separate rows with ``contribution``
     set to their multiplicative factor and ``rule`` prefixed by ``boost:``;
     they are excluded from the totals.

Notes
-----
- Rows are returned as a pandas DataFrame with columns
  ``rule``, ``feature``, ``value``, ``contribution``, sorted by contribution
  (descending, stable, so ties keep rule order).
- Explanations use the exact same rule tables as the scorers.
"""

from typing import Any, Dict, List

import pandas as pd

from ..schemas import ArrhythmiaRequest, CADRequest
from .arrhythmia import active_boosts, deviation_contributions, deviation_score
from .cad import cad_contributions, cad_risk_score

COLUMNS = ["rule", "feature", "value", "contribution"]


def _value(record: Any, feature: str) -> Any:
    """Numeric value of ``feature`` on ``record`` (codes are parsed)."""
    raw = getattr(record, feature)
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _frame(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(rows, columns=COLUMNS)
    return df.sort_values("contribution", ascending=False, kind="stable").reset_index(drop=True)


def explain_cad(record: CADRequest) -> pd.DataFrame:
    """
    Per-rule contributions to the CAD risk score of a validated record.

    Args
    ----
    record:
        A record that passed ``validate_cad``.

    Returns
    -------
    pd.DataFrame
        Fired rules, largest contribution first. ``df["contribution"].sum()``
        equals ``cad_risk_score(record)`` up to float summation order.
    """
    rows = [
        {"rule": rule, "feature": feature, "value": _value(record, feature), "contribution": weight}
        for feature, rule, weight in cad_contributions(record)
    ]
    return _frame(rows)


def explain_arrhythmia(record: ArrhythmiaRequest) -> pd.DataFrame:
    """
    Per-rule deviation contributions and active boosts for a validated record.

    Args
    ----
    record:
        A record that passed ``validate_arrhythmia``.

    Returns
    -------
    pd.DataFrame
        Fired deviation rules followed by ``boost:`` rows (each block sorted
        by contribution, descending).
    """
    rows = [
        {"rule": rule, "feature": feature, "value": _value(record, feature), "contribution": weight}
        for feature, rule, weight in deviation_contributions(record)
    ]
    rows += [
        {
            "rule": f"boost:{tag}",
            "feature": boost.feature,
            "value": _value(record, boost.feature),
            "contribution": boost.factor,
        }
        for tag, boost in active_boosts(record).items()
    ]
    df = pd.DataFrame(rows, columns=COLUMNS)
    df["_boost"] = df["rule"].str.startswith("boost:")
    df = df.sort_values(["_boost", "contribution"], ascending=[True, False], kind="stable")
    return df.drop(columns="_boost").reset_index(drop=True)


def summarize(model: str, record: Any) -> Dict[str, Any]:
    """JSON-ready explanation for ``model`` (``cad`` or ``arrhythmia``).

    Returns
    -------
    dict
        Keys ``model``, ``total``, ``capped_total`` (arrhythmia only, else
        None) and ``contributions`` (list of row dicts).

    Raises
    ------
    KeyError
        If ``model`` is unknown.
    """
    if model == "cad":
        df = explain_cad(record)
        total = cad_risk_score(record)
        capped = None
    elif model == "arrhythmia":
        df = explain_arrhythmia(record)
        total = deviation_score(record, cap=False)
        capped = deviation_score(record)
    else:
        raise KeyError(model)

    df = df.astype(object).where(pd.notna(df), None)
    return {
        "model": model,
        "total": total,
        "capped_total": capped,
        "contributions": df.to_dict(orient="records"),
    }
