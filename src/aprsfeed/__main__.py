"""Allow ``python -m aprsfeed``."""

from __future__ import annotations

from aprsfeed.cli.main import main

main()
