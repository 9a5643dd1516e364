import logging

from tableau_agent.config import config
from tableau_agent.fastmcp_server import build_fastmcp_server


def main() -> None:
    # stdout carries the MCP protocol; logging goes to stderr.
    logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))
    server = build_fastmcp_server()
    server.run("stdio")


if __name__ == "__main__":
    main()
