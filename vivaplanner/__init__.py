"""Conference planning HTTP service with a session search tool and date urgency helpers."""

__version__ = "0.1.0"
__all__ = ["__version__"]