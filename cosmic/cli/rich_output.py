"""Automatic rich output detection for CLI commands.

Detection priority:
1. ``COSMIC_RICH`` env var — explicit override (``0``/``false``/``no``
   to disable, ``1``/``true``/``yes`` to force enable)
2. ``NO_COLOR`` env var — standard convention, disables rich
3. ``CI`` env var — CI runners, disables rich
4. ``stdout.isatty()`` — false in pipes, redirects, cron, disables rich
"""

from __future__ import annotations

import os
import sys


def should_use_rich() -> bool:
    """Determine whether to use Rich progress bars and colours."""
    override = os.environ.get("COSMIC_RICH", "").strip().lower()
    if override in ("0", "false", "no"):
        return False
    if override in ("1", "true", "yes"):
        return True

    if os.environ.get("NO_COLOR") is not None:
        return False

    if os.environ.get("CI"):
        return False

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False
