"""Domain layer: entities and storage ports."""
