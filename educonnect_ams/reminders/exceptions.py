"""
Error taxonomy for the reminder engine.

- TransientStoreError: a database write failed during reconcile or
  dispatch. Dispatch leaves the reminder pending for the next tick;
  reconcile raises so the triggering operation fails loudly.
- TransportError: the email transport refused or failed a send.
  Retried by the delivery queue with backoff.
- InvariantViolation: a second live reminder for the same
  (assessment, student, policy) triple was rejected by the store.
"""


class ReminderEngineError(Exception):
    """Base class for reminder engine failures."""


class TransientStoreError(ReminderEngineError):
    pass


class TransportError(ReminderEngineError):
    pass


class InvariantViolation(ReminderEngineError):
    pass
