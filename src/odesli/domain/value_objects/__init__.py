"""Value objects - platforms, entity types and error kinds."""
