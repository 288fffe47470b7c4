"""Shared tool dispatch logic.

Used by ``mcp_server.py`` and ``cli.py``.
"""

import logging

logger = logging.getLogger(__name__)


def strip_nulls(value):
    """Recursively remove None values from dicts/lists."""
    if isinstance(value, dict):
        cleaned = {k: strip_nulls(v) for k, v in value.items() if v is not None}
        return cleaned or None
    if isinstance(value, list):
        return [strip_nulls(v) for v in value]
    return value


DISPATCH: dict[str, tuple[str, str]] = {
    "capture_snapshot": ("history", "capture_snapshot"),
    "list_snapshots": ("history", "list_snapshots"),
    "list_changes": ("history", "list_changes"),
    "item_history": ("history", "item_history"),
    "rediff_snapshot": ("history", "rediff_snapshot"),
}


def create_services(settings, engine) -> dict[str, object]:
    """Instantiate services from settings and engine.

    Returns a dict keyed by service attribute name (matching DISPATCH values).
    """
    from sellerwatch.tools.history import HistoryService
    from sellerwatch.tools.mercadolibre import MercadoLibreClient

    mercadolibre = MercadoLibreClient(
        access_token=settings.ml_access_token,
        base_url=settings.ml_api_url,
        timeout=settings.source_timeout_seconds,
        page_size=settings.source_page_size,
    )
    return {
        "mercadolibre": mercadolibre,
        "history": (
            HistoryService(
                engine=engine,
                source=mercadolibre,
                seller_id=settings.ml_seller_id,
                resolve_seller=mercadolibre.get_current_user_id,
                snapshot_limit=settings.snapshot_list_limit,
                lookback_days=settings.changes_lookback_days,
                changes_limit=settings.changes_limit,
            )
            if engine
            else None
        ),
    }


def execute_tool(services: dict[str, object], name: str, tool_input: dict) -> dict:
    """Execute a tool by name using the provided services dict."""
    if not isinstance(tool_input, dict):
        return {"error": f"Invalid tool input type for '{name}': expected dict"}

    cleaned = strip_nulls(tool_input) or {}

    logger.debug("Executing tool: %s with keys: %s", name, list(cleaned.keys()))

    entry = DISPATCH.get(name)
    if entry is None:
        return {"error": f"Unknown tool: {name}"}

    service_attr, method_name = entry
    service = services.get(service_attr)
    if service is None:
        return {"error": f"Service '{service_attr}' not available (no database engine)"}

    try:
        return getattr(service, method_name)(**cleaned)
    except TypeError as e:
        logger.warning("Tool input validation failed: %s: %s", name, e)
        return {"error": f"Invalid arguments for '{name}': {e}"}
    except Exception as e:
        logger.exception("Tool execution failed", extra={"tool_name": name})
        return {"error": str(e)}
