"""Candidate extraction from free text."""

from place_extractor.extraction.candidates import extract_candidates

__all__ = ["extract_candidates"]
