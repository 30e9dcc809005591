"""
Progressive bracket allocation and flow animation.

On Windows the Proactor loop trips up the test client's portal thread.
Force the Selector policy early so the test runner can manage the loop cleanly.
"""
from __future__ import annotations

import asyncio
import sys

if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

__version__ = "0.1.0"
