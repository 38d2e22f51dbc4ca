"""CLI entry point.

Usage:
    python -m service_daemon.cli example
    python -m service_daemon.cli order
    service-daemon example --duration 5
"""

from service_daemon.cli.app import app


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
