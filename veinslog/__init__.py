"""Ingestion and normalization engine for Veins simulation artifacts."""

__version__ = "0.1.0"
