"""Application layer: caches, synchronizer, session and use cases."""
