from .test_scanner import TestNotFoundError, TestScanner, TestSource

__all__ = ["TestNotFoundError", "TestScanner", "TestSource"]
