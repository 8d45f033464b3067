"""Ingestion pipeline for Hacker News "Who is hiring?" threads."""

__version__ = "0.1.0"
