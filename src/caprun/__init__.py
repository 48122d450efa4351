"""caprun: front-office mission run engine."""

__version__ = "1.0.0"
