"""
Data models for the StorySlides application.
"""

from .slide_models import Slide, Ad, AdPlacement, ReadingProgress

__all__ = [
    "Slide",
    "Ad",
    "AdPlacement",
    "ReadingProgress",
]
