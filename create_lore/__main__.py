"""Allow ``python -m create_lore``."""

from create_lore.pipeline import main

main()
