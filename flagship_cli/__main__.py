"""Allow ``python -m flagship_cli``."""

from flagship_cli.cli import main

if __name__ == "__main__":
    main()
