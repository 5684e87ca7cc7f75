"""Confidence scoring and lineage construction."""

from __future__ import annotations

from .builder import LineageBuilder, select_primary_source
from .confidence import ConfidenceModel

__all__ = ["ConfidenceModel", "LineageBuilder", "select_primary_source"]
