"""
Completion time model for latency calibration.
"""

from __future__ import annotations
from typing import List, Dict, Any, Optional, Sequence

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from .data import ModelFit
from ..core.interfaces import CompletionResult
from ..logs.benchmark_logger import get_logger

SINGULARITY_EPS = 1e-10

MIN_PROMPT_RATE = 0.01          # ms per prompt token
MIN_CACHED_PROMPT_RATE = 0.001  # ms per cached prompt token
MIN_COMPLETION_RATE = 0.1       # ms per completion token

# Returned when the design matrix is (nearly) singular
FALLBACK_PROMPT_RATE = 3.0
FALLBACK_CACHED_PROMPT_RATE = 0.01
FALLBACK_COMPLETION_RATE = 25.0
FALLBACK_R_SQUARED = 0.5


class SingularMatrixError(ArithmeticError):
    """Normal equations cannot be solved reliably."""


def solve_normal_equations(xtx: np.ndarray, xty: np.ndarray, eps: float = SINGULARITY_EPS) -> np.ndarray:
    """
    Solve ``xtx @ beta = xty`` by Gauss-Jordan elimination with partial pivoting.

    Raises:
        SingularMatrixError: if a column of `xtx` is entirely ~0, or a pivot is ~0 after the row swap
    """
    n = xtx.shape[0]
    for j in range(n):
        if np.all(np.abs(xtx[:, j]) <= eps):
            raise SingularMatrixError(f"column {j} of X^T X is zero")

    augmented = np.hstack([xtx.astype(float), xty.reshape(-1, 1).astype(float)])

    for i in range(n):
        max_row = i + int(np.argmax(np.abs(augmented[i:, i])))
        if max_row != i:
            augmented[[i, max_row]] = augmented[[max_row, i]]

        pivot = augmented[i, i]
        if abs(pivot) < eps:
            raise SingularMatrixError(f"pivot {i} is nearly zero")

        augmented[i, i:] /= pivot
        for j in range(n):
            if j != i:
                augmented[j, i:] -= augmented[j, i] * augmented[i, i:]

    return augmented[:, n]


def _design_matrix(results: Sequence[CompletionResult]):
    X = np.array(
        [[r.prompt_tokens, r.cached_prompt_tokens, r.completion_tokens] for r in results],
        dtype=float,
    )
    y = np.array([r.response_time_ms for r in results], dtype=float)
    return X, y


class CompletionTimeModel:
    """
    Linear completion time model without intercept:

        response_time_ms = a * prompt_tokens + b * cached_prompt_tokens + c * completion_tokens

    Coefficients are found by ordinary least squares on the normal equations.
    Degenerate data never raises: the model falls back to fixed, conservative
    coefficients and reports R² = 0.5 so downstream consumers can tell.
    """

    def __init__(self, min_points: int = 2):
        self.min_points = min_points
        self.coefficients: Optional[np.ndarray] = None
        self.r2_score: Optional[float] = None
        self.mae: Optional[float] = None
        self.rmse: Optional[float] = None
        self.n_points = 0
        self.is_fitted = False
        self.is_fallback = False

    def _use_fallback(self, n_points: int) -> None:
        self.coefficients = np.array([FALLBACK_PROMPT_RATE, FALLBACK_CACHED_PROMPT_RATE, FALLBACK_COMPLETION_RATE])
        self.r2_score = FALLBACK_R_SQUARED
        self.mae = None
        self.rmse = None
        self.n_points = n_points
        self.is_fitted = True
        self.is_fallback = True

    def fit(self, results: Sequence[CompletionResult]) -> Dict[str, Any]:
        """
        Fit the model to observations.

        Args:
            results: Observations; None entries are skipped

        Returns:
            Dictionary with model accuracy metrics
        """
        logger = get_logger()
        points = [r for r in results if r is not None]

        if len(points) < self.min_points:
            logger.warning(f"Not enough results for model fitting: {len(points)}")
            self.coefficients = np.zeros(3)
            self.r2_score = 0.0
            self.mae = None
            self.rmse = None
            self.n_points = len(points)
            self.is_fitted = False
            self.is_fallback = False
            return {"r2_score": 0.0, "n_points": len(points)}

        X, y = _design_matrix(points)
        for i, (row, t) in enumerate(zip(X, y)):
            logger.debug(f"Data point {i}: P={row[0]:.0f}, C={row[1]:.0f}, G={row[2]:.0f}, time_ms={t:.1f}")

        xtx = X.T @ X
        xty = X.T @ y

        try:
            beta = solve_normal_equations(xtx, xty)
        except SingularMatrixError as e:
            logger.warning(f"Matrix is singular ({e}), using fallback values")
            self._use_fallback(len(points))
            return {"r2_score": self.r2_score, "n_points": self.n_points, "fallback": True}

        beta = np.maximum(beta, [MIN_PROMPT_RATE, MIN_CACHED_PROMPT_RATE, MIN_COMPLETION_RATE])

        y_pred = X @ beta
        total_ss = float(np.sum((y - y.mean()) ** 2))
        residual_ss = float(np.sum((y - y_pred) ** 2))
        r2 = 1.0 - residual_ss / total_ss if total_ss > 0 else 0.0

        self.coefficients = beta
        # Clamped coefficients can fit worse than the mean
        self.r2_score = float(min(1.0, max(0.0, r2)))
        self.mae = float(mean_absolute_error(y, y_pred))
        self.rmse = float(np.sqrt(mean_squared_error(y, y_pred)))
        self.n_points = len(points)
        self.is_fitted = True
        self.is_fallback = False

        logger.debug(f"R-squared: total_ss={total_ss:.2f}, residual_ss={residual_ss:.2f}, r2={self.r2_score:.6f}")

        return {
            "r2_score": self.r2_score,
            "mae": self.mae,
            "rmse": self.rmse,
            "n_points": self.n_points,
        }

    def to_model_fit(self) -> ModelFit:
        coef = self.coefficients if self.coefficients is not None else np.zeros(3)
        return ModelFit(
            prompt_rate=float(coef[0]),
            cached_prompt_rate=float(coef[1]),
            completion_rate=float(coef[2]),
            r_squared=float(self.r2_score or 0.0),
            n_points=self.n_points,
            mae=self.mae,
            rmse=self.rmse,
            is_fallback=self.is_fallback,
        )


def fit_completion_time_model(results: List[CompletionResult]) -> ModelFit:
    """Fit observations and return the resulting `ModelFit` (all-zero when data is insufficient)."""
    model = CompletionTimeModel()
    model.fit(results)
    return model.to_model_fit()
