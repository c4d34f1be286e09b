from typing import Any, Dict, Optional

from utils.errors import MatchingError


def success_response(data: Any = None, message: str = "Success", status_code: int = 200):
    """Standard success response format for Flask-RESTful"""
    return {
        "success": True,
        "message": message,
        "data": data
    }, status_code


def error_response(message: str = "Error", status_code: int = 400, details: Optional[Dict] = None):
    """Standard error response format for Flask-RESTful"""
    return {
        "success": False,
        "error": {
            "message": message,
            "code": status_code,
            "details": details or {}
        }
    }, status_code


def matching_error_response(error: MatchingError):
    """Render an engine error with its stable message and code"""
    return error_response(error.message, error.status_code, error.to_details())


def paginated_response(data: list, limit: int, offset: int, message: str = "Success"):
    """Limit/offset page of results"""
    return {
        "success": True,
        "message": message,
        "data": data,
        "pagination": {
            "limit": limit,
            "offset": offset,
            "count": len(data),
        }
    }, 200
