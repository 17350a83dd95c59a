"""docqa — ask questions about uploaded PDF documents with cited answers."""

__version__ = "0.1.0"
