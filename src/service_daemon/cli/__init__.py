"""CLI module for service-daemon.

Provides command-line access to the example service system.
"""

from service_daemon.cli.app import app

__all__ = ["app"]
