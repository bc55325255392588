"""mindfeed: personalized content recommendations and adaptive model selection."""

__version__ = "1.0.0"
