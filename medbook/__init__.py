"""User storage and token renewal HTTP service for a hospital booking system."""

__version__ = "0.1.0"