# File: blueprintc/__main__.py
"""
Blueprintc — Module entry point.

Allows running the compiler directly via::

    python -m blueprintc build draft.yaml

This module simply delegates to the CLI entry point defined in ``blueprintc.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from blueprintc.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
