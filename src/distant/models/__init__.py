"""Data models for requests, normalized results, and index administration."""
