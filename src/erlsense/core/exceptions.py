"""Custom exceptions for erlsense library."""

from __future__ import annotations

from typing import Any


class ErlsenseError(Exception):
    """Base exception for all erlsense errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class LexError(ErlsenseError):
    """Fragment is not lexically valid."""

    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(message, {"line": line, "column": column})
        self.line = line
        self.column = column


class ParseError(ErlsenseError):
    """Token sequence does not form a valid expression list."""

    pass


class MalformedCallError(ErlsenseError):
    """Bracket nesting underflow while scanning a call site."""

    pass


class CallError(ErlsenseError):
    """Introspection or documentation call against a runtime failed."""

    def __init__(
        self,
        message: str,
        target: Any = None,
        mfa: tuple[str, str, int] | None = None,
    ) -> None:
        context: dict[str, Any] = {}
        if target is not None:
            context["target"] = target
        if mfa is not None:
            context["mfa"] = "{}:{}/{}".format(*mfa)
        super().__init__(message, context)
        self.target = target
        self.mfa = mfa


class ConfigurationError(ErlsenseError):
    """Error in configuration."""

    pass
