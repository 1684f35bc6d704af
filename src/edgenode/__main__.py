"""Module entrypoint for ``python -m edgenode``."""

from __future__ import annotations

from edgenode.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
