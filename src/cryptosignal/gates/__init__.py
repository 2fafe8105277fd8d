"""Safety gates."""

from .falling_knife import is_catching_falling_knife

__all__ = ["is_catching_falling_knife"]
