"""A&R Club artist momentum scoring and alerting engine."""

__version__ = "0.1.0"
