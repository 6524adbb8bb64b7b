"""Main entry point when executing pdcli as a package.

This allows running the package using python -m pdcli.
"""

from pdcli.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
