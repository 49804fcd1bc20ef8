"""clipqueue - background job queue for content-generation workflows."""

__version__ = "0.1.0"
