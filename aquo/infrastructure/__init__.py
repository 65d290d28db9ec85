"""Infrastructure adapters: remote store HTTP client and retry policy."""
