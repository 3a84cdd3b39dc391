"""Label Recovery - find and restore messages a mail filter moved out of the inbox.

This package reconstructs when a Gmail label was applied to each message that
carries it and lets the user move selected conversations back to the inbox.
"""

__version__ = "0.1.0"
__author__ = "Trickl"

from label_recovery.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__", "__author__"]
