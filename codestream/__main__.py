"""Allow ``python -m codestream``."""

from codestream.cli import main

main()
