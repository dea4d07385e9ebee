"""
DAX Formatter MCP stdio launcher.

MCP hosts that are configured with a script path run this file directly:

    {"command": "python", "args": ["/path/to/mcp_wrapper.py"]}

It starts the gateway exactly like ``daxformatter serve``. Configuration
comes from the DAXFMT_* environment variables set in the host config.
"""

import sys

from daxformatter.cli import main

if __name__ == "__main__":
    sys.exit(main(["serve", *sys.argv[1:]]))
