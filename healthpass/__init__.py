"""HealthPass - health records and shareable health passes."""

__version__ = "1.0.0"
