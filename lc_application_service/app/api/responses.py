from typing import Any, Optional


def success(data: Any = None, message: Optional[str] = None, **extra: Any) -> dict:
    """Builds the ``{success, data?, message?, ...}`` envelope every endpoint returns."""
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    body.update(extra)
    return body


def failure(error: Any) -> dict:
    return {"success": False, "error": error}
