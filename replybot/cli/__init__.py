"""Command-line interface for replybot."""
