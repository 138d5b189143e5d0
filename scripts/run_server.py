"""
Run the webhook server and register the Trello webhooks.
Run with: python scripts/run_server.py
"""

import sys
sys.path.insert(0, ".")

from boardsync.main import run

if __name__ == "__main__":
    run()
