"""Entry point for running lgtrefactor as a module."""

from lgtrefactor.cli_entry import main

if __name__ == "__main__":
    main()
