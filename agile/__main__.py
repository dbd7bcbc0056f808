"""Allow running the search with ``python -m agile``."""

from .cli import main

if __name__ == '__main__':
    main()
