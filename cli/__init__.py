"""CLI package for the Feishu clipper publisher

Command-line front end to import relay credentials and publish
captured content as Feishu documents.
"""

from cli.main import main

__all__ = [
    "main",
]
