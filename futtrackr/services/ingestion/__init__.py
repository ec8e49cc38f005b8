"""Ingestion module for FUTTrackr."""

from futtrackr.services.ingestion.normalizer import normalize_match, normalize_run

__all__ = ["normalize_match", "normalize_run"]
