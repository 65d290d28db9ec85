"""Domain layer: entities, payloads and pure rule modules (no I/O)."""
