"""Bitbucket MCP Server.

Exposes Bitbucket repositories, pull requests and branching models as
Model Context Protocol tools.
"""

__version__ = "1.0.0"
