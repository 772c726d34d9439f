"""Errors raised by the extension registry clients."""
from __future__ import annotations


class RegistryError(Exception):
    """A registry could not be reached or answered with garbage.

    "Not found" is not an error; clients report it as False/None.
    """

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message
