"""Thumbnail canvas compositor: layout, photo compositing and text rendering on Pillow."""

__version__ = "0.1.0"
