"""
Core app - Shared primitives for the rental engine.

This app provides the pieces every other app builds on:
- Money rounding (money.py)
- Typed failure values (errors.py)
- Engine configuration access (conf.py)

Nothing in here performs I/O; every function is safe to call from
any number of threads at once.
"""
