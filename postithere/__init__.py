"""postithere - form submission backend.

This repository is intentionally small:
- Registered users log in with email/password and receive a JWT.
- Users own forms, identified by a caller-chosen `formId`.
- Anyone may post data to `/forms/{formId}/submit`; only the owner reads it back.

Core concepts:
- Atomic unit of stored data is a *form submission* (formId, origin, parameters, timestamp)
- Registration is gated by an operator-controlled flag in the `config` collection.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
