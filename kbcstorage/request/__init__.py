"""Contexts, immutable HTTP requests, API requests, request groups and body conversion."""

__all__ = ["apirequest", "context", "groups", "httprequest", "structmap"]