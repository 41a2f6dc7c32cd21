"""Domain modules: wisdom, health and shop, plus their shared base classes."""
