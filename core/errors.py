# core/errors.py
"""
Domain exceptions for FaceRecall.

Routes translate these into HTTP errors; the core itself only raises them.
"""

from __future__ import annotations


class FaceRecallError(Exception):
    """Base class for all FaceRecall domain errors."""


class DimensionMismatch(FaceRecallError, ValueError):
    """Two embeddings of different length were compared."""

    def __init__(self, left: int, right: int) -> None:
        self.left = left
        self.right = right
        super().__init__(f"Embedding dimension mismatch: {left} != {right}")


class InvalidThreshold(FaceRecallError, ValueError):
    """An auto-accept threshold outside the allowed range was configured."""

    def __init__(self, value: float, low: float, high: float) -> None:
        self.value = value
        super().__init__(f"Threshold {value} outside allowed range [{low}, {high}]")


class QuizSessionError(FaceRecallError):
    """A quiz session was driven through an invalid transition."""
