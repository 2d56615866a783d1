"""semrel - branch-aware semantic release engine."""

__version__ = "0.3.0"
