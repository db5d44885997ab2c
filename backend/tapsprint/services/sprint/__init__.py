"""Sprint session manager.

In-memory state machine for tap-sprint games: registry, per-session state,
timers, push events and result persistence. HTTP routes and socket handlers
reach it through ``get_orchestrator()`` and stay free of game mechanics.
"""

from flask import current_app

EXTENSION_KEY = 'sprint'


def get_orchestrator():
    return current_app.extensions[EXTENSION_KEY]
