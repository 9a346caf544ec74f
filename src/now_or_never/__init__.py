"""
Now or Never: deadline-bound tasks that vanish the moment their time runs out.

Subpackages:
- core: clock, errors, events, ports (Protocols), application state
- tasks: models, urgency classifier, stores, timers, lifecycle engine, tick driver
- storage: SQLite snapshot persistence
- cli / connectors: console front end
"""

__version__ = "1.1.0"
