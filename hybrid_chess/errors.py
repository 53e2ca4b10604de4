"""
Failure taxonomy for move selection.

Remote collaborators raise RemoteEngineError subclasses; the orchestrator
catches them and reports the matching MoveFailure in its MoveResult, so the
caller always knows which engine failed and why.
"""

from __future__ import annotations

import enum


class MoveFailure(str, enum.Enum):
    NO_LEGAL_MOVES = "no_legal_moves"
    RATE_LIMITED = "rate_limited"
    INVALID_MOVE_RETURNED = "invalid_move_returned"
    PROVIDER_ERROR = "provider_error"
    TIMEOUT_EXPIRED = "timeout_expired"
    REFERENCE_ENGINE_UNAVAILABLE = "reference_engine_unavailable"


class EngineError(Exception):
    """Base class for every move-selection error."""


class RemoteEngineError(EngineError):
    failure: MoveFailure = MoveFailure.PROVIDER_ERROR


class RateLimited(RemoteEngineError):
    failure = MoveFailure.RATE_LIMITED


class ProviderError(RemoteEngineError):
    failure = MoveFailure.PROVIDER_ERROR


class InvalidMoveReturned(RemoteEngineError):
    failure = MoveFailure.INVALID_MOVE_RETURNED

    def __init__(self, move: object, message: str = "") -> None:
        self.move = move
        super().__init__(message or f"engine returned a move that is not legal here: {move!r}")


class TimeoutExpired(RemoteEngineError):
    failure = MoveFailure.TIMEOUT_EXPIRED


class ReferenceEngineUnavailable(RemoteEngineError):
    failure = MoveFailure.REFERENCE_ENGINE_UNAVAILABLE
