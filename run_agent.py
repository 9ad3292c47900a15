"""
Entry point: record a goal on a live page as an animated GIF.

Usage: python run_agent.py <url> <goal> [output.gif]
Settings come from DEMOGIF_* environment variables (or a .env file).
"""

from __future__ import annotations

import sys

from demogif.core.config import OUT_DIR, load_config
from demogif.core.orchestrator import print_summary, run

TARGET_URL = "https://example.com"
USER_QUERY = "Scroll down the page, then click the 'More information' link."


def main():
    args = sys.argv[1:]
    url = args[0] if len(args) > 0 else TARGET_URL
    goal = args[1] if len(args) > 1 else USER_QUERY
    output = args[2] if len(args) > 2 else str(OUT_DIR / "demo.gif")

    result = run(url, goal, output, config=load_config())
    print_summary(goal, result)


if __name__ == "__main__":
    main()
