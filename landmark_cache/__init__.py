"""Landmark map cache: Wikipedia-backed points of interest served by bounding box and search."""

__version__ = "0.1.0"
