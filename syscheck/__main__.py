"""Allow ``python -m syscheck``."""

from .cli import main

main()
