"""Allow running as ``python -m rawpipe``."""

from rawpipe.cli import main

if __name__ == "__main__":
    main()
