"""``python -m create_server``."""

from create_server.cli import entrypoint

entrypoint()
