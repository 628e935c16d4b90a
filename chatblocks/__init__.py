"""
chatblocks - streaming chat backend with document blocks and tool calling.

The FastAPI application lives in ``chatblocks.main``; start it with the
``chatblocks-server`` console script after installing the package.
"""

from chatblocks.version import VERSION

__version__ = VERSION
__all__ = [
    "VERSION",
    "__version__",
]
