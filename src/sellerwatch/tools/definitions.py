"""Tool definitions exposed to MCP clients.

Each entry defines a tool name, description, and input schema. Optional
parameters are omitted from ``required``.
"""

TOOLS = [
    {
        "name": "capture_snapshot",
        "description": (
            "Capture the seller's current listings as a new snapshot and log every "
            "change (new items, price, title, category and status changes, removed "
            "items) against the previous snapshot. The first capture is a baseline "
            "and produces no changes."
        ),
        "input_schema": {
            "type": "object",
            "properties": {},
            "required": [],
        },
    },
    {
        "name": "list_snapshots",
        "description": "List recent snapshots, most recent first, with their totals.",
        "input_schema": {
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of snapshots (default 30)",
                },
            },
            "required": [],
        },
    },
    {
        "name": "list_changes",
        "description": (
            "List changes detected in the last N days, newest first. Each change "
            "includes the date of the latest snapshot that contains the item."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "days": {
                    "type": "integer",
                    "description": "Lookback window in days (default 7)",
                },
            },
            "required": [],
        },
    },
    {
        "name": "item_history",
        "description": "Full change history of a single marketplace item, newest first.",
        "input_schema": {
            "type": "object",
            "properties": {
                "item_id": {"type": "string", "description": "Marketplace item id, e.g. MLB123"},
            },
            "required": ["item_id"],
        },
    },
    {
        "name": "rediff_snapshot",
        "description": (
            "Re-run change detection for a stored snapshot whose capture failed after "
            "the snapshot was saved. Running it twice for the same snapshot duplicates "
            "its changes."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "snapshot_id": {"type": "integer"},
            },
            "required": ["snapshot_id"],
        },
    },
]
