"""An embeddable data-structure database with an HTTP server and client."""

__version__ = "0.1.0"