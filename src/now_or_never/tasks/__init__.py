"""
Task subsystem.

Components:
- task_models.py: data structures (Task, GraveEntry, Counters, views)
- urgency.py: urgency classifier + display helpers
- task_store.py: active task store
- graveyard.py: time-boxed recovery store (24h TTL)
- timers.py: cancellable deferred callbacks (settle delay, hold-to-resurrect)
- engine.py: lifecycle engine (expiration migration, resurrection, counters)
- tick_driver.py: 1-second asyncio driver
- task_api.py: small high-level helpers used by front ends
"""
