"""
DocMorph document conversion engine.

Converts documents between PDF, DOCX, HTML and plain text. The domain layer
lives in `docmorph.conversion`; `docmorph.webapi` exposes it over HTTP.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
