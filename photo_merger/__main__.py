"""Entry point for `python -m photo_merger`."""

from .cli import main

if __name__ == "__main__":
    main()
