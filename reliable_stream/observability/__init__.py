"""Observability helpers for the reliability layer."""

from .logging import ReliabilityLogger

__all__ = ["ReliabilityLogger"]
