#!/usr/bin/env python
"""
PATH: manage.py

Entry point for `migrate`, `runserver`, `recalculate_ledger`,
`reconcile_outstanding` and friends.

DJANGO_SETTINGS_MODULE falls back to backend.settings.dev when it is
empty or names the bare settings package. Deployments pass
backend.settings.prod themselves.
"""

from __future__ import annotations

import os
import sys

DEFAULT_SETTINGS = "backend.settings.dev"


def _settings_module() -> str:
    selected = (os.environ.get("DJANGO_SETTINGS_MODULE") or "").strip()
    if selected in ("", "backend.settings"):
        return DEFAULT_SETTINGS
    return selected


def main() -> None:
    os.environ["DJANGO_SETTINGS_MODULE"] = _settings_module()

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Django is not importable. Install the project first "
            "(pip install -e .) inside the active virtualenv."
        ) from exc

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
