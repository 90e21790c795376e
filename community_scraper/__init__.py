"""
Community Scraper - batch ingestion of local businesses, news and events.

Architecture:
- core/: Stable foundation (models, HTTP client, normalizers, parsers, dedup)
- sources/: Per-site scrapers composed through a registry
- config/: YAML-driven settings, source definitions and heuristics
- storage: Persistence collaborator interface and reference stores
- orchestrator: Runs categories, retention cleanup, diff/upsert, summary
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
