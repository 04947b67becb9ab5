"""Allow ``python -m bedtime``."""

from bedtime._cli import main

main()
