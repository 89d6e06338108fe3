"""
Error Handling for Arca Vault Metrics

Low-level clients raise the exceptions below. Public core operations catch
them and degrade to sentinel values, so nothing here ever reaches the
presentation layer as a hard failure.

Features:
- Custom exception classes with structured details
- Error tracking and aggregation for soft-failed calls
"""

import logging
import traceback
from datetime import datetime
from typing import Dict, List, Optional
from enum import Enum

logger = logging.getLogger("ErrorHandler")


# ============================================
# ERROR CODES
# ============================================

class ErrorCode(str, Enum):
    INTERNAL_ERROR = "INTERNAL_ERROR"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"
    BLOCKCHAIN_ERROR = "BLOCKCHAIN_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    ABI_SHAPE_ERROR = "ABI_SHAPE_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# ============================================
# CUSTOM EXCEPTIONS
# ============================================

class ArcaError(Exception):
    """Base exception for Arca Vault Metrics"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Dict = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict:
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp.isoformat()
            }
        }


class ExternalAPIError(ArcaError):
    """External HTTP API call failed"""
    def __init__(self, api_name: str, status_code: int = None, message: str = None):
        details = {"api": api_name}
        if status_code:
            details["api_status_code"] = status_code
        super().__init__(
            message or f"External API '{api_name}' failed",
            ErrorCode.EXTERNAL_API_ERROR,
            details
        )


class BlockchainError(ArcaError):
    """Contract read failed"""
    def __init__(self, address: str, function_name: str, message: str = None):
        super().__init__(
            message or f"Contract read {function_name}() on {address} failed",
            ErrorCode.BLOCKCHAIN_ERROR,
            {"address": address, "function": function_name}
        )


class StorageError(ArcaError):
    """Local key-value store operation failed"""
    def __init__(self, message: str, original_error: Exception = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(message, ErrorCode.STORAGE_ERROR, details)


class AbiShapeError(ArcaError):
    """Decoded return value does not match the expected ABI shape"""
    def __init__(self, decoder: str, expected: str, received: str):
        super().__init__(
            f"{decoder}: expected {expected}, received {received}",
            ErrorCode.ABI_SHAPE_ERROR,
            {"decoder": decoder, "expected": expected, "received": received}
        )


class ConfigurationError(ArcaError):
    """Vault identity or protocol configuration cannot be resolved"""
    def __init__(self, message: str, identifier: str = None):
        details = {"identifier": identifier} if identifier else {}
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


# ============================================
# ERROR TRACKING
# ============================================

class ErrorTracker:
    """Tracks and aggregates soft-failed errors for diagnostics"""

    def __init__(self, max_errors: int = 1000):
        self.errors: List[Dict] = []
        self.max_errors = max_errors
        self.error_counts: Dict[str, int] = {}

    def track(self, error: Exception, source: Optional[str] = None):
        """Track an error"""
        error_type = type(error).__name__
        key = error.code.value if isinstance(error, ArcaError) else error_type

        self.error_counts[key] = self.error_counts.get(key, 0) + 1

        error_info = {
            "type": error_type,
            "message": str(error),
            "source": source,
            "timestamp": datetime.now().isoformat(),
            "traceback": traceback.format_exc() if not isinstance(error, ArcaError) else None
        }

        if isinstance(error, ArcaError):
            error_info["code"] = error.code.value
            error_info["details"] = error.details

        self.errors.append(error_info)

        if len(self.errors) > self.max_errors:
            self.errors = self.errors[-self.max_errors:]

        # Unexpected exception types are worth a louder log line
        if not isinstance(error, ArcaError):
            logger.error(f"Error tracked: {error_type} - {str(error)[:200]}")

    def get_stats(self) -> Dict:
        """Get error statistics"""
        return {
            "total_errors": len(self.errors),
            "error_counts": dict(self.error_counts),
            "recent_errors": self.errors[-10:],
            "timestamp": datetime.now().isoformat()
        }

    def clear(self):
        """Clear error history"""
        self.errors.clear()
        self.error_counts.clear()


# Global error tracker
error_tracker = ErrorTracker()
