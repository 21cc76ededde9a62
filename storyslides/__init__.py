"""StorySlides: slide segmentation, ad interleaving and reading progress API."""

__version__ = "1.0.0"
