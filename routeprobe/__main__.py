"""Allow running as ``python -m routeprobe``."""

from .cli.main import main

main()
