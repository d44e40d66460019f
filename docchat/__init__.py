"""docchat: retrieval and caching engine for question answering over documents."""

__version__ = "0.3.0"
