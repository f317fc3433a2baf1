"""create-server -- scaffold Express, NestJS and Django starter servers."""

__version__ = "1.0.0"
