"""Entry point for `python -m aftersales`.

Usage:
    python -m aftersales
"""

from __future__ import annotations

import asyncio

from aftersales.app import main

asyncio.run(main())
