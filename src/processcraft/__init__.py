"""
ProcessCraft Kanban backend package.

The FastAPI application lives in ``processcraft.main``; the board controller
and its mutation clients live in ``processcraft.board`` and
``processcraft.clients``.
"""

__version__ = "0.1.0"
