"""Environment file helpers.

The ``.env`` files themselves are rendered from templates; this module holds
the text transforms applied to them and the secret generators that feed
them.
"""

from __future__ import annotations

import re
import secrets

# ``KEY=VALUE`` with an optional leading ``export``.
_ASSIGNMENT = re.compile(r"^(?P<key>\s*(?:export\s+)?[A-Za-z_][A-Za-z0-9_.]*)\s*=")


def redact_env(content: str) -> str:
    """Return *content* with every value blanked (``KEY=VALUE`` -> ``KEY=``).

    Comments and blank lines are kept as they are, so ``.env.example`` keeps
    the section headers of the ``.env`` it was derived from.
    """
    lines = []
    for line in content.split("\n"):
        match = _ASSIGNMENT.match(line)
        if match and not line.lstrip().startswith("#"):
            lines.append(f"{match.group('key')}=")
        else:
            lines.append(line)
    return "\n".join(lines)


def env_keys(content: str) -> list[str]:
    """Return the variable names assigned in *content*, in order."""
    keys: list[str] = []
    for line in content.splitlines():
        if line.lstrip().startswith("#"):
            continue
        match = _ASSIGNMENT.match(line)
        if match:
            key = match.group("key").strip()
            if key.startswith("export "):
                key = key[len("export "):].strip()
            keys.append(key)
    return keys


def generate_secret(nbytes: int = 32) -> str:
    """Random hex secret suitable for signing tokens (``JWT_SECRET``)."""
    return secrets.token_hex(nbytes)


def generate_django_secret_key() -> str:
    """Random Django ``SECRET_KEY``.

    URL-safe characters only, so the value needs no quoting in ``.env``.
    """
    return "django-insecure-" + secrets.token_urlsafe(40)
