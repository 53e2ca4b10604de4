"""
Hybrid orchestrator: picks the move source for each decision and validates
whatever it returns.

Modes:
    local             the built-in Searcher (iterative deepening alpha-beta)
    custom_remote     a language-model suggester (remote.HttpMoveSuggester)
    reference_remote  a reference UCI engine (remote.UciReferenceChannel)

Exactly one request is in flight per decision. Remote calls are bounded by
a timeout; a late answer is discarded, never applied. Every move is checked
against the legal-move list before it is returned, whatever its source.

Failures are returned, not hidden: MoveResult.failure names what went
wrong and MoveResult.source names the engine that was asked, so the caller
decides whether to switch modes. Setting fallback_to_local makes the local
engine answer after a remote failure instead; the result then reports the
local engine as its source and keeps the remote failure in `detail`.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

from pydantic import BaseModel, field_validator

from hybrid_chess.constants import (
    DEFAULT_TIME_LIMIT_MS,
    MAX_DEPTH,
    REFERENCE_DEFAULT_DEPTH,
    REFERENCE_DEFAULT_TIME_MS,
    REMOTE_TIMEOUT_S,
)
from hybrid_chess.errors import (
    InvalidMoveReturned,
    MoveFailure,
    ProviderError,
    ReferenceEngineUnavailable,
    RemoteEngineError,
    TimeoutExpired,
)
from hybrid_chess.position import Position
from hybrid_chess.remote import (
    MoveSuggester,
    ProviderConfig,
    ReferenceChannel,
    SuggestionRequest,
    coordinate_to_san,
)
from hybrid_chess.search import Searcher

_log = logging.getLogger(__name__)

T = TypeVar("T")


class EngineMode(str, enum.Enum):
    LOCAL = "local"
    CUSTOM_REMOTE = "custom_remote"
    REFERENCE_REMOTE = "reference_remote"


class HybridConfig(BaseModel):
    """
    Orchestrator settings.

    Fields:
        mode:              Which engine answers.
        time_limit_ms:     Search budget for local and reference modes.
        depth:             Depth cap (local) or requested depth (reference).
        provider:          Language-model settings for custom_remote.
        request_timeout_s: Bound on one remote request.
        fallback_to_local: Let the local engine answer after a remote failure.
    """

    mode: EngineMode = EngineMode.LOCAL
    time_limit_ms: int = DEFAULT_TIME_LIMIT_MS
    depth: Optional[int] = None
    provider: Optional[ProviderConfig] = None
    request_timeout_s: float = REMOTE_TIMEOUT_S
    fallback_to_local: bool = False

    @field_validator("time_limit_ms")
    @classmethod
    def clamp_time_limit(cls, v: int) -> int:
        return max(1, v)

    @field_validator("depth")
    @classmethod
    def clamp_depth(cls, v: Optional[int]) -> Optional[int]:
        return None if v is None else max(1, min(v, MAX_DEPTH))


@dataclass
class MoveResult:
    move: Optional[str]
    source: EngineMode
    failure: Optional[MoveFailure] = None
    detail: str = ""
    score: Optional[int] = None
    depth: Optional[int] = None
    nodes: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.move is not None

    @property
    def is_limit_reached(self) -> bool:
        return self.failure is MoveFailure.RATE_LIMITED


def _discard_late_result(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        _log.debug("late remote result discarded: %s", exc)
    else:
        _log.debug("late remote result discarded: %r", task.result())


class HybridAI:
    """
    One orchestrator per game. It owns its Searcher, so tables are never
    shared across games.
    """

    def __init__(
        self,
        config: Optional[HybridConfig] = None,
        searcher: Optional[Searcher] = None,
        suggester: Optional[MoveSuggester] = None,
        reference: Optional[ReferenceChannel] = None,
    ) -> None:
        self.config = config or HybridConfig()
        self.searcher = searcher or Searcher()
        self.suggester = suggester
        self.reference = reference
        self._in_flight = False

    # ------------------------------------------------------------------
    # Mode switching
    # ------------------------------------------------------------------

    def _reconfigure(self, **changes: object) -> None:
        if self._in_flight:
            raise RuntimeError("cannot switch engine mode while a move is being chosen")
        self.config = HybridConfig(**{**self.config.model_dump(), **changes})

    def set_local_mode(self, time_limit_ms: int = DEFAULT_TIME_LIMIT_MS, depth: Optional[int] = None) -> None:
        self._reconfigure(mode=EngineMode.LOCAL, time_limit_ms=max(1, time_limit_ms), depth=depth)

    def set_custom_mode(self, provider: ProviderConfig, suggester: Optional[MoveSuggester] = None) -> None:
        if suggester is not None:
            self.suggester = suggester
        if self.suggester is None:
            raise ValueError("custom_remote mode needs a move suggester")
        self._reconfigure(mode=EngineMode.CUSTOM_REMOTE, provider=provider)

    def set_reference_mode(
        self,
        depth: int = REFERENCE_DEFAULT_DEPTH,
        time_limit_ms: int = REFERENCE_DEFAULT_TIME_MS,
        channel: Optional[ReferenceChannel] = None,
    ) -> None:
        if channel is not None:
            self.reference = channel
        if self.reference is None:
            raise ValueError("reference_remote mode needs a reference channel")
        self._reconfigure(
            mode=EngineMode.REFERENCE_REMOTE,
            depth=max(1, depth),
            time_limit_ms=max(1, time_limit_ms),
        )

    # ------------------------------------------------------------------
    # Move selection
    # ------------------------------------------------------------------

    async def get_best_move(
        self,
        fen: str,
        legal_moves: list[str],
        position: Position,
        move_history: Optional[list[str]] = None,
    ) -> MoveResult:
        """
        Choose a move with the configured engine.

        Args:
            fen:          Current position as FEN (sent to remote engines).
            legal_moves:  SAN legal moves; the only moves that may be returned.
            position:     Position collaborator for local search and for
                          translating reference-engine moves. Must not be
                          touched by the caller until this returns.
            move_history: SAN moves so far; defaults to position.move_history().

        Returns:
            MoveResult with either a legal move or a failure.
        """
        mode = self.config.mode
        if not legal_moves:
            return MoveResult(None, mode, MoveFailure.NO_LEGAL_MOVES, "position has no legal moves")

        self._in_flight = True
        try:
            if mode is EngineMode.LOCAL:
                return await self._local(position, legal_moves)
            try:
                if mode is EngineMode.CUSTOM_REMOTE:
                    move = await self._custom(fen, legal_moves, position, move_history)
                else:
                    move = await self._reference(fen, position)
                if move not in legal_moves:
                    raise InvalidMoveReturned(move)
            except RemoteEngineError as exc:
                _log.warning("%s engine failed (%s): %s", mode.value, exc.failure.value, exc)
                if self.config.fallback_to_local:
                    result = await self._local(position, legal_moves)
                    result.detail = f"{mode.value} failed ({exc.failure.value}): {exc}"
                    return result
                return MoveResult(None, mode, exc.failure, str(exc))
            return MoveResult(move, mode)
        finally:
            self._in_flight = False

    async def _bounded(self, awaitable: Awaitable[T], timeout_s: float) -> T:
        # The remote call is shielded: on timeout it keeps running and its
        # eventual result is dropped.
        task = asyncio.ensure_future(awaitable)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout_s)
        except asyncio.TimeoutError as exc:
            task.add_done_callback(_discard_late_result)
            raise TimeoutExpired(f"no answer within {timeout_s:.1f}s") from exc

    async def _custom(
        self,
        fen: str,
        legal_moves: list[str],
        position: Position,
        move_history: Optional[list[str]],
    ) -> str:
        if self.suggester is None or self.config.provider is None:
            raise ProviderError("custom_remote mode has no move suggester or provider")
        request = SuggestionRequest(
            fen=fen,
            move_history=move_history if move_history is not None else position.move_history(),
            legal_moves=legal_moves,
            config=self.config.provider,
        )
        move = await self._bounded(self.suggester.suggest(request), self.config.request_timeout_s)
        return move.strip()

    async def _reference(self, fen: str, position: Position) -> str:
        if self.reference is None:
            raise ReferenceEngineUnavailable("reference_remote mode has no reference channel")
        depth = self.config.depth or REFERENCE_DEFAULT_DEPTH
        budget_ms = self.config.time_limit_ms
        coordinate = await self._bounded(
            self.reference.best_move(fen, depth, budget_ms),
            self.config.request_timeout_s + budget_ms / 1000,
        )
        return coordinate_to_san(position, coordinate)

    async def _local(self, position: Position, legal_moves: list[str]) -> MoveResult:
        move, score, depth, nodes = await asyncio.to_thread(
            self.searcher.get_best_move,
            position,
            self.config.time_limit_ms,
            None,
            self.config.depth or MAX_DEPTH,
        )
        if move is None:
            return MoveResult(None, EngineMode.LOCAL, MoveFailure.NO_LEGAL_MOVES, "position has no legal moves")
        if move not in legal_moves:
            return MoveResult(
                None, EngineMode.LOCAL, MoveFailure.INVALID_MOVE_RETURNED,
                f"local engine chose {move!r}, which is not in the legal-move list",
            )
        return MoveResult(move, EngineMode.LOCAL, score=score, depth=depth, nodes=nodes)

    async def aclose(self) -> None:
        if self.reference is not None:
            await self.reference.aclose()
