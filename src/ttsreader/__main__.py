"""Entry point for running ttsreader as a module."""

from .cli import app


def main() -> None:
    """Main entry point for the ttsreader CLI application."""
    app()


if __name__ == "__main__":
    main()
