"""
Reminder engine service layer.

- policies:    the Policy Store (which offsets are active)
- scheduling:  the Reminder Scheduler (owed predicate + reconcile)
- dispatch:    the tick processor turning due reminders into notifications
- audit:       append-only decision log
- history:     read helpers for dashboards
"""
