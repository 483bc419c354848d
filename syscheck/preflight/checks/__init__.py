"""
Built-in checks.

Each module exposes ``run(context, out)`` and reports its findings as
status lines through the StatusWriter it is given.
"""
