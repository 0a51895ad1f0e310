"""Terminal grid dashboard of independently refreshed widgets."""

__version__ = "0.1.0"
