#!/usr/bin/env python3
"""
todo-manager CLI

Track tasks by time horizon and priority, grouped into contexts.

Usage:
    ./todo-manager.py add "Write tests" -t short -p high
    ./todo-manager.py list [--all] [--horizon mid]
    ./todo-manager.py complete <id-prefix>
    ./todo-manager.py context new work
    ./todo-manager.py import backup.json --merge

Examples:
    # Show every task in the active context, completed ones included
    ./todo-manager.py list --all

    # Move a task to the long-term list and lower its priority
    ./todo-manager.py edit 3fa2 -t long -p low

    # Back up everything, then restore it later
    ./todo-manager.py export ~/todo-backup.json
    ./todo-manager.py import ~/todo-backup.json
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from todo_manager import main

if __name__ == '__main__':
    sys.exit(main())
