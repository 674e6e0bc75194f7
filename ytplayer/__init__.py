"""Music player library core: tag databases, play lists, settings, node data and tag lookup."""

__version__ = "1.0.0"