"""nowgame: persistence and domain-state core of a personal progression tracker."""

__version__ = "1.0.0"
