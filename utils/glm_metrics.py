"""
Helpers for interpreting values the H2O engine hands back.

Nothing here computes a statistic. The functions decide sort direction for
grid metrics and decode the GLM summary's regularization text.
"""
import math
import re
from typing import Any, Dict, Optional

from h2o.exceptions import H2OError

from utils import constants

_ALPHA_RE = re.compile(r"alpha\s*=\s*([-+0-9.eE]+)")
_LAMBDA_RE = re.compile(r"lambda\s*=\s*([-+0-9.eE]+)")


def resolve_sort_order(metric: str, decreasing: Optional[bool] = None) -> bool:
    """
    Return the `decreasing` flag for H2OGridSearch.get_grid().

    An explicit flag always wins. Otherwise higher-is-better metrics
    (auc, aucpr, r2) sort descending and error metrics ascending.
    """
    if decreasing is not None:
        return bool(decreasing)
    metric = metric.lower()
    if metric in constants.HIGHER_IS_BETTER_METRICS:
        return True
    if metric in constants.LOWER_IS_BETTER_METRICS:
        return False
    raise ValueError(f"Unsupported sort metric '{metric}'. Expected one of {list(constants.SORT_METRICS)}")


def penalty_label(alpha: Optional[float], lambda_: Optional[float] = None) -> str:
    """Name the penalty an (alpha, lambda) pair amounts to."""
    if lambda_ is not None and lambda_ == 0:
        return constants.PENALTY_NONE
    if alpha is None:
        return constants.PENALTY_NONE
    if math.isclose(alpha, 1.0):
        return constants.PENALTY_LASSO
    if math.isclose(alpha, 0.0):
        return constants.PENALTY_RIDGE
    return constants.PENALTY_ELASTIC_NET


def parse_regularization(text: Optional[str]) -> Dict[str, Any]:
    """
    Decode the `regularization` cell of an H2O GLM model summary.

    H2O renders it as one of:
        "Elastic Net (alpha = 0.5, lambda = 9.244E-4 )"
        "Lasso (lambda = 9.244E-4 )"
        "Ridge ( lambda = 0.01 )"
        "None"
    Lasso and Ridge omit alpha, so it is implied (1.0 and 0.0).
    """
    result = {'regularization': text, 'alpha': None, 'lambda': None, 'penalty': constants.PENALTY_NONE}
    if not text:
        return result

    alpha_match = _ALPHA_RE.search(text)
    lambda_match = _LAMBDA_RE.search(text)
    if lambda_match:
        result['lambda'] = float(lambda_match.group(1))

    if alpha_match:
        result['alpha'] = float(alpha_match.group(1))
    elif text.strip().lower().startswith('lasso'):
        result['alpha'] = 1.0
    elif text.strip().lower().startswith('ridge'):
        result['alpha'] = 0.0

    if result['alpha'] is not None and result['lambda'] is not None:
        result['penalty'] = penalty_label(result['alpha'], result['lambda'])
    return result


def first_value(value: Any) -> Any:
    """H2O reports most GLM parameters as single-element lists (alpha=[0.5])."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def ranking_split(nfolds: Optional[int]) -> str:
    """
    Split whose metrics H2O sorts a grid on.

    get_grid(sort_by=...) ranks on cross-validation metrics when the models
    have them and on the validation frame otherwise. Grids here are always
    trained with a validation frame.
    """
    return "xval" if (nfolds or 0) >= 2 else "valid"


def metric_scalar(value: Any) -> Optional[float]:
    """
    Collapse an H2O metric to a float.

    Threshold metrics (mean_per_class_error, f1, ...) come back as a list of
    [threshold, value] pairs. H2O attaches the value at the chosen threshold
    as `.value`; a plain list falls back to the first pair.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        picked = getattr(value, "value", None)
        if picked is not None:
            return metric_scalar(picked)
        if not value:
            return None
        head = value[0]
        return float(head[-1]) if isinstance(head, (list, tuple)) else float(head)
    return float(value)


def model_metric(model, metric: str, split: str = "valid") -> Optional[float]:
    """
    Read a scalar metric off an H2O model for one split.

    `split` is 'train', 'valid' or 'xval'. Returns None when the engine has no
    metrics for that split (no validation frame, no cross-validation).
    """
    getter = getattr(model, metric)
    try:
        value = getter(**{split: True})
    except (H2OError, ValueError, KeyError):
        return None
    return metric_scalar(value)


def model_summary_row(model) -> Dict[str, Any]:
    """First row of the GLM model summary table as a plain dict."""
    summary = model.summary()
    if summary is None:
        return {}
    df = summary.as_data_frame()
    if df.empty:
        return {}
    return {str(k): v for k, v in df.iloc[0].to_dict().items()}
