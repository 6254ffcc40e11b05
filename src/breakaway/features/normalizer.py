"""Z-score normalisation of raw rider signals.

Brings heterogeneous sources (ranking points, season points, specialty
scores) onto a common standardised scale before fusion. Statistics use
present values only; absent values map to 0, i.e. "no evidence" rather
than "below average".
"""

from __future__ import annotations

from typing import Iterable, Union

import numpy as np
import pandas as pd

ArrayLike = Union[np.ndarray, pd.Series, Iterable]


def _as_float_array(values: ArrayLike) -> np.ndarray:
    if isinstance(values, pd.Series):
        return pd.to_numeric(values, errors="raise").to_numpy(dtype=np.float64, na_value=np.nan)
    return np.array(
        [np.nan if v is None else v for v in values],
        dtype=np.float64,
    )


def zscore(values: ArrayLike) -> np.ndarray:
    """Standardise values to sample mean 0 and sample std 1.

    Args:
        values: Raw values, with None/NaN for absent entries.

    Returns:
        Array of z-scores. Absent entries are 0. If fewer than two values
        are present, or they are all identical, every entry is 0.
    """
    arr = _as_float_array(values)
    out = np.zeros(arr.shape, dtype=np.float64)

    present = ~np.isnan(arr)
    if present.sum() < 2:
        return out

    sample = arr[present]
    std = sample.std(ddof=1)
    if std == 0:
        return out

    out[present] = (sample - sample.mean()) / std
    return out


def zscore_column(df: pd.DataFrame, column: str) -> pd.Series:
    """Z-score a DataFrame column; a missing column yields all zeros."""
    if column not in df.columns:
        return pd.Series(0.0, index=df.index, name=f"{column}_z")
    return pd.Series(zscore(df[column]), index=df.index, name=f"{column}_z")
