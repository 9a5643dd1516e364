"""Entry point for running the Tableau Agent MCP server."""
import logging
from tableau_agent.fastmcp_server import build_fastmcp_server
from tableau_agent.config import config

logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

if __name__ == "__main__":
    server = build_fastmcp_server()
    logger.info(f"Starting Tableau Agent MCP server on {config.fastmcp_host}:{config.fastmcp_port}")
    server.run()
