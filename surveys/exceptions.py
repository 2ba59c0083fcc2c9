"""
Errors raised by the conditional logic engine.

Only OutOfRangeTargetError escapes evaluation; every other problem found while
evaluating is resolved locally by failing closed and is reported through
ErrorKind in explain traces and log records.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MALFORMED_RULE = 'malformed_rule'
    MISSING_ANSWER = 'missing_answer'
    OUT_OF_RANGE_TARGET = 'out_of_range_target'
    TYPE_MISMATCH = 'type_mismatch'


class LogicEvaluationError(Exception):
    """Raised when logic evaluation fails"""
    pass


class InvalidLogicError(LogicEvaluationError):
    """Raised when logic structure is invalid"""
    pass


class OutOfRangeTargetError(LogicEvaluationError):
    """Raised when a matched skip_to_page action names a page that does not exist"""

    kind = ErrorKind.OUT_OF_RANGE_TARGET

    def __init__(self, target_page_index: Optional[int], total_pages: int, group_index: Optional[int] = None):
        self.target_page_index = target_page_index
        self.total_pages = total_pages
        self.group_index = group_index
        super().__init__(
            f"Branching group {group_index} targets page {target_page_index}, "
            f"valid range is 0..{total_pages - 1}"
        )
