"""Dotfiles installer (Python-first, idempotent).

Core design goals:
- Idempotent steps, safe to re-run
- Presence checks before every mutating action
- Platform detected once, passed explicitly
- Never overwrite user data without a backup
- Centralized logging
"""

__all__ = []
