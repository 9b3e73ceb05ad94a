"""Allow `python -m pb_cli`."""

from pb_cli.cli import main

if __name__ == "__main__":
    main()
