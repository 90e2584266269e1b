"""
Shared Domain Layer
Pure domain contracts with no framework dependencies
"""
from src.shared.domain.base_entity import BaseEntity
from src.shared.domain.result import Error, ErrorKind, Failure, Result, Success, fail, ok

__all__ = [
    "BaseEntity",
    "Error",
    "ErrorKind",
    "Result",
    "Success",
    "Failure",
    "ok",
    "fail",
]
