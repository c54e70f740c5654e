"""Front-desk reservation core for the hotel back office."""

__version__ = "0.1.0"
