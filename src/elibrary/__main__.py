"""Main entry point for the elibrary package."""

from elibrary.cli import main


if __name__ == "__main__":
    main()
