"""
Standard API response format and utility functions.
"""

from typing import Any, List, Optional


def success_response(data: Any = None, message: str = "Success", warnings: Optional[List[str]] = None) -> dict:
    body = {"success": True, "data": data, "message": message}
    if warnings:
        body["warnings"] = warnings
    return body


def error_response(message: str = "Error", data: Any = None) -> dict:
    return {"success": False, "data": data, "message": message}
