"""Domain layer: entities, enums and exceptions of the sync engine."""
