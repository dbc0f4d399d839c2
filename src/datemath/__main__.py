"""Allow ``python -m datemath``."""

from datemath.cli import main

main()
