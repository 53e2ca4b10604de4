"""
Remote move sources: a language-model suggester over HTTP and a reference
UCI engine driven asynchronously.

Both are collaborators of the orchestrator in hybrid_chess.hybrid. They
never apply a move; they only produce a candidate and classify failures
into the errors taxonomy.

CustomRemote (HttpMoveSuggester):
    POST {fen, moveHistory, legalMoves, config: {apiKey, modelName,
    providerName}} to a suggestion endpoint. Reply: {move, error?,
    isLimitReached?}. HTTP 429 or isLimitReached -> RateLimited; any other
    failure -> ProviderError. The blocking requests call runs in a worker
    thread so the event loop stays free.

ReferenceRemote (UciReferenceChannel):
    Starts a UCI engine with python-chess once and reuses it. Each request
    is a (fen, depth, time budget) search; the reply is the engine's
    bestmove in coordinate notation ("e2e4", "e7e8q"). coordinate_to_san()
    maps it back to the SAN form of a legal move.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, Union

import chess
import chess.engine
import requests
from pydantic import BaseModel, ConfigDict, Field

from hybrid_chess.constants import REMOTE_TIMEOUT_S
from hybrid_chess.errors import (
    InvalidMoveReturned,
    ProviderError,
    RateLimited,
    ReferenceEngineUnavailable,
    TimeoutExpired,
)
from hybrid_chess.position import Position

_log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Wire models
# ---------------------------------------------------------------------------


class ProviderConfig(BaseModel):
    """Language-model provider settings, passed through to the suggester."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(alias="apiKey")
    model_name: str = Field(alias="modelName")
    provider_name: Optional[str] = Field(default=None, alias="providerName")


class SuggestionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fen: str
    move_history: list[str] = Field(default_factory=list, alias="moveHistory")
    legal_moves: list[str] = Field(alias="legalMoves")
    config: ProviderConfig


class SuggestionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    move: Optional[str] = None
    error: Optional[str] = None
    is_limit_reached: bool = Field(default=False, alias="isLimitReached")


# ---------------------------------------------------------------------------
# CustomRemote
# ---------------------------------------------------------------------------


class MoveSuggester(Protocol):
    async def suggest(self, request: SuggestionRequest) -> str: ...


class HttpMoveSuggester:
    """
    Suggestion client for an HTTP endpoint that fronts a language model.

    Args:
        endpoint:  URL accepting the SuggestionRequest JSON body.
        session:   Optional requests.Session (connection reuse, test doubles).
        timeout_s: Transport timeout for one request.
    """

    def __init__(
        self,
        endpoint: str,
        session: Optional[requests.Session] = None,
        timeout_s: float = REMOTE_TIMEOUT_S,
    ) -> None:
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.timeout_s = timeout_s

    async def suggest(self, request: SuggestionRequest) -> str:
        return await asyncio.to_thread(self._post, request)

    def _post(self, request: SuggestionRequest) -> str:
        try:
            response = self.session.post(
                self.endpoint,
                json=request.model_dump(by_alias=True),
                timeout=self.timeout_s,
            )
        except requests.Timeout as exc:
            raise TimeoutExpired(f"suggester did not answer within {self.timeout_s}s") from exc
        except requests.RequestException as exc:
            raise ProviderError(f"suggester request failed: {exc}") from exc

        if response.status_code == 429:
            raise RateLimited("suggester rate limit reached")

        try:
            payload = SuggestionResponse.model_validate(response.json())
        except ValueError as exc:
            raise ProviderError(f"malformed suggester reply (HTTP {response.status_code})") from exc

        if payload.is_limit_reached:
            raise RateLimited(payload.error or "provider limit reached")
        if not response.ok:
            raise ProviderError(payload.error or f"suggester returned HTTP {response.status_code}")
        if payload.error:
            raise ProviderError(payload.error)

        move = (payload.move or "").strip()
        if not move:
            raise ProviderError("suggester returned no move")
        return move


# ---------------------------------------------------------------------------
# ReferenceRemote
# ---------------------------------------------------------------------------


class ReferenceChannel(Protocol):
    async def best_move(self, fen: str, depth: int, time_budget_ms: int) -> str: ...

    async def aclose(self) -> None: ...


class UciReferenceChannel:
    """
    Reference engine reached over the UCI protocol.

    The engine process is started on first use and reused for every later
    request. If it dies, the next request starts a fresh one.

    Args:
        command: Executable path, or argv list, of a UCI engine.
    """

    def __init__(self, command: Union[str, list[str]]) -> None:
        self.command = command
        self._engine: Optional[chess.engine.UciProtocol] = None

    async def _ensure_engine(self) -> chess.engine.UciProtocol:
        if self._engine is None:
            try:
                _, self._engine = await chess.engine.popen_uci(self.command)
            except (OSError, chess.engine.EngineError) as exc:
                raise ReferenceEngineUnavailable(f"cannot start reference engine {self.command!r}: {exc}") from exc
            _log.info("started reference engine %r", self.command)
        return self._engine

    async def best_move(self, fen: str, depth: int, time_budget_ms: int) -> str:
        engine = await self._ensure_engine()
        limit = chess.engine.Limit(depth=depth, time=time_budget_ms / 1000)
        try:
            result = await engine.play(chess.Board(fen), limit)
        except chess.engine.EngineError as exc:
            self._engine = None
            raise ReferenceEngineUnavailable(f"reference engine failed: {exc}") from exc
        if result.move is None:
            raise ReferenceEngineUnavailable("reference engine returned no move")
        return result.move.uci()

    async def aclose(self) -> None:
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        try:
            await engine.quit()
        except chess.engine.EngineTerminatedError:
            _log.debug("reference engine already terminated")


def coordinate_to_san(position: Position, coordinate: str) -> str:
    """
    Translate a coordinate move ("g1f3", "e7e8q") to the SAN of a legal move.

    Raises:
        InvalidMoveReturned: No legal move has that from/to/promotion.
    """
    text = coordinate.strip().lower()
    if len(text) not in (4, 5):
        raise InvalidMoveReturned(coordinate)
    origin, target, promotion = text[:2], text[2:4], text[4:] or None
    for move in position.verbose_moves():
        if move.from_square == origin and move.to_square == target and move.promotion == promotion:
            return move.san
    raise InvalidMoveReturned(coordinate)
