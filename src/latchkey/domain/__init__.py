"""Domain layer: entities, errors and authentication flows."""
