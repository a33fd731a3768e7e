"""Turn pasted itinerary text into a reviewed table of Japanese places."""

__version__ = "0.1.0"
