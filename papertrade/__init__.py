"""Paper-trading simulator core: quote providers, order engine, proxy server."""

__version__ = "0.1.0"
