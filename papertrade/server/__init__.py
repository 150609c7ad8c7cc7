"""HTTP proxy in front of the finance data upstream."""

from papertrade.server.app import create_app

__all__ = ["create_app"]
