"""
replybot - human-paced auto replies for chat channels.
"""

__version__ = "0.1.0"
__logo__ = "💬"
