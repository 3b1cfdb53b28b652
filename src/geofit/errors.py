# Andy Zhao
"""
Exception types raised by the fitting core.

- LinearAlgebraFailure: a decomposition could not produce its factors.
  Always propagated, never replaced by a fallback value.
- InsufficientData: fewer observations than the model needs.
  Raised at estimator entry, before any matrix work.

Divergence of an iterative estimator is NOT an exception.
The estimator stops, logs it, and reports `diverged=True` on its result.
"""

from __future__ import annotations


class GeofitError(Exception):
    """Base class for all errors raised by geofit."""


class LinearAlgebraFailure(GeofitError):
    """SVD / pseudo-inverse / solve failed (degenerate or non-finite input)."""


class InsufficientData(GeofitError, ValueError):
    """Not enough observations to determine the model."""

    def __init__(self, required: int, got: int, model: str = "model") -> None:
        self.required = int(required)
        self.got = int(got)
        super().__init__(f"{model} needs at least {self.required} observations, got {self.got}")
