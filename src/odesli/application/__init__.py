"""Application layer - caching, normalization and batch orchestration."""
