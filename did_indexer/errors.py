"""
Error taxonomy for the DID registry indexer.

- ConfigError: invalid or missing run configuration
- CallFailure: an aggregated call did not succeed within its allowed attempts
- DecodeFailure: a returned payload could not be interpreted as the expected shape

Every error aborts the whole run. The orchestrator stamps the pipeline stage
onto the exception before re-raising so the CLI can report where it failed.
"""

from __future__ import annotations

from typing import Optional


class IndexerError(Exception):
    """Base class for all indexer failures."""

    def __init__(self, message: str, *, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ConfigError(IndexerError, ValueError):
    """Run configuration could not be loaded or validated."""


class CallFailure(IndexerError):
    """An aggregated call kept failing after all attempts."""

    def __init__(
        self,
        attempts: int,
        cause: BaseException,
        *,
        batch: Optional[str] = None,
        stage: Optional[str] = None,
    ) -> None:
        target = f" for batch {batch}" if batch else ""
        super().__init__(
            f"Aggregated call failed{target} after {attempts} attempt(s): "
            f"{type(cause).__name__}: {cause}",
            stage=stage,
        )
        self.attempts = attempts
        self.cause = cause
        self.batch = batch


class DecodeFailure(IndexerError):
    """Raw call output did not match the expected ABI shape."""

    def __init__(self, function: str, reason: str, *, stage: Optional[str] = None) -> None:
        super().__init__(f"Could not decode result of {function}: {reason}", stage=stage)
        self.function = function
        self.reason = reason


__all__ = ["IndexerError", "ConfigError", "CallFailure", "DecodeFailure"]
