"""Entry point for `python -m discotrack`.

Usage:
    python -m discotrack
    discotrack run
"""

from __future__ import annotations

import asyncio

from discotrack.app import main

asyncio.run(main())
