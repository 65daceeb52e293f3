"""CLI entry point

Runs the command-line front end from the cli package.
"""

from cli.main import main

if __name__ == "__main__":
    main()
