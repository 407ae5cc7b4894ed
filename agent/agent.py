"""
Check-in Agent
==============
Registers with a controller, then checks in on a jittered schedule,
exchanging queued jobs. Quits on its own once the kill date passes or
after max-retry consecutive failed check-ins.

Usage:
    python agent.py --url https://controller.example --sleep 30s --skew 3000
"""

import sys

from checkin_core.runner import main

if __name__ == "__main__":
    sys.exit(main())
