"""Allow ``python -m latchkey``."""

from latchkey.cli import main

main()
