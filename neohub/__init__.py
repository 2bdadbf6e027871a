"""NeoHub

Background hub for editor GUI processes.

This package provides a long-running daemon that:
- Listens on a local UNIX socket for run requests from the neohub CLI
- Launches one editor process per working directory/path and reuses it afterwards
- Restarts or quits managed editors on demand
- Remembers which window to give focus back to after a focus-stealing action

License: MIT
"""

__version__ = "0.2.0"
