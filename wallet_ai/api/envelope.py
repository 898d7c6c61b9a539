"""
Uniform response envelope: {success: true, data} or {success: false, error}.
"""

from typing import Any


def ok(data: Any = None) -> dict:
    body: dict = {"success": True}
    if data is not None:
        body["data"] = data
    return body


def fail(message: str) -> dict:
    return {"success": False, "error": message}
