"""Read-only query selectors."""

from hours_kernel.selectors.base import BaseSelector

__all__ = ["BaseSelector"]
