"""pr-monitor: watches a pull request's CI pipeline and reacts to failures."""

__version__ = "0.1.0"
