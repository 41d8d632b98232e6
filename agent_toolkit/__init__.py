"""
agent_toolkit — tool surface for an autonomous coding agent.

Public API for library usage::

    from agent_toolkit import EditTool, EditToolOptions

    tool = EditTool(EditToolOptions(cwd="."))
    result = tool.execute("app.py", "x = 1", "x = 2")
    print(result.details.diff)
"""

from .editing import EditTool, EditToolOptions, EditToolResult, EditError

__all__ = ["EditTool", "EditToolOptions", "EditToolResult", "EditError"]
