"""
Microstock Metadata Generation Package

This package sends images to a multimodal AI service and turns its answer into
microstock-ready metadata: a title, alternative titles, a description, a
category and a deduplicated set of keywords, exported as CSV for upload.
"""

__version__ = "1.0.0"
