"""Distant — Client-side toolkit for Elasticsearch-compatible search engines.

Builds query payloads, drives the scroll-cursor protocol, performs bulk
ingestion, and normalizes engine responses into typed results.
"""

__version__ = "0.1.0"
