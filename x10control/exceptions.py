"""
X10Control library exceptions.

This module defines all custom exceptions used throughout the library.
Transport failures are not exceptions; they are reported as an InterfaceStatus
through the send completion.
"""


class X10Error(Exception):
    """Base exception for X10 protocol errors"""
    pass


class X10InvalidNotationError(X10Error, ValueError):
    """Raised when a textual address or state cannot be parsed"""
    pass


class X10ConfigurationError(X10Error):
    """Raised when configuration is invalid"""
    pass
