from __future__ import annotations

import asyncio
import uuid
from typing import Optional

from mcp.server.fastmcp import Context

_initialized = False
_init_lock = asyncio.Lock()


async def ensure_initialized() -> None:
    global _initialized
    if _initialized:
        return
    async with _init_lock:
        if _initialized:
            return
        # Lazy import to avoid circular dependency
        from tableau_agent.agent import initialize_agent
        await initialize_agent()
        _initialized = True


def get_request_id(ctx: Optional[Context] = None) -> str:
    """Get the MCP request id from the context, or a fresh one."""
    try:
        request_id = ctx.request_id if ctx is not None else None
    except ValueError:
        # Context used outside of a request
        request_id = None
    return str(request_id) if request_id else str(uuid.uuid4())


async def shutdown() -> None:
    global _initialized
    if _initialized:
        # Lazy import to avoid circular dependency
        from tableau_agent.agent import close_agent
        await close_agent()
        _initialized = False
