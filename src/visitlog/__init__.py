"""visitlog - visitor log API."""

__version__ = "0.1.0"
