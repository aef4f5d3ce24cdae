"""Domain layer - exceptions, value objects and DTOs."""
