"""Infrastructure layer - HTTP, rate limiting, observability and plugins."""
