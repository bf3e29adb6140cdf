"""Entry point for ``python -m replybot``."""

from replybot.cli.commands import app

if __name__ == "__main__":
    app()
