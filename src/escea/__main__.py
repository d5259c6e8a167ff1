"""Allow running escea as ``python -m escea``."""

from escea.cli import main

main()
