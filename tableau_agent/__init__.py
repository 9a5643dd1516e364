"""Tableau datasource query agent served over MCP."""
