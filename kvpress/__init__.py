"""kvpress — concurrent load generator for Redis-protocol key-value stores."""

__version__ = "1.0.0"
