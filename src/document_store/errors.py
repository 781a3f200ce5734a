"""Errors raised by document store adapters."""


class DocumentStoreError(Exception):
    """A store call failed (transport, status code or malformed payload)."""
