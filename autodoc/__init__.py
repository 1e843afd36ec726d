"""AutoDoc: phased, tool-driven generation and maintenance of code documentation pages."""

__version__ = "1.0.0"
