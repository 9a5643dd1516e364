"""Web Server - FastAPI REST API exposing the Tableau tools over plain HTTP."""

import json
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import uvicorn

from tableau_agent.agent import (
    initialize_agent,
    close_agent,
    execute_tool,
    get_tool_definitions,
)


class ToolCallRequest(BaseModel):
    """Request to call a tool."""
    tool_name: str
    arguments: dict[str, Any] = {}


class ToolCallResponse(BaseModel):
    """Response from a tool call."""
    status: str
    type: Optional[str] = None
    data: Optional[Any] = None
    message: Optional[str] = None
    error: Optional[str] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    await initialize_agent()
    yield
    await close_agent()


app = FastAPI(
    title="Tableau Agent API",
    description="Tableau datasource query tools over HTTP",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _to_response(result: dict[str, Any]) -> ToolCallResponse:
    return ToolCallResponse(
        status=result.get("status", "success"),
        type=result.get("type"),
        data=result.get("data"),
        message=result.get("message"),
        error=result.get("error"),
    )


@app.get("/")
async def root():
    """Service information."""
    return {
        "name": "Tableau Agent API",
        "version": "0.1.0",
        "status": "healthy",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/tools")
async def list_tools():
    """List available Tableau tools."""
    return {"tools": get_tool_definitions()}


@app.post("/tools/{tool_name}", response_model=ToolCallResponse)
async def call_tool(tool_name: str, request: Request):
    """Call a specific tool. The request body is used directly as arguments."""
    body = await request.body()
    try:
        arguments = json.loads(body) if body else {}
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    if not isinstance(arguments, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    result = await execute_tool(tool_name, arguments)
    return _to_response(result)


@app.post("/execute", response_model=ToolCallResponse)
async def execute(request: ToolCallRequest):
    """Execute a tool by name."""
    result = await execute_tool(request.tool_name, request.arguments)
    return _to_response(result)


def main():
    """Entry point for web server."""
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info"
    )


if __name__ == "__main__":
    main()
