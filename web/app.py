"""
FastAPI web application exposing the hybrid move selector.

POST /api/move takes a FEN, an engine mode and mode parameters, asks the
orchestrator for a move, and returns it with the resulting FEN. Failures
from the failure taxonomy become HTTP errors: the caller sees which engine
failed and why, and can retry with another mode.

Architecture notes:
- Stateless per request: the client sends the full FEN each time, and each
  request gets its own HybridAI (so its own tables).
- The remote collaborators come from the environment:
      CHESS_AI_SUGGESTER_URL     language-model suggestion endpoint
      CHESS_AI_REFERENCE_ENGINE  path to a UCI engine binary
"""

import logging
import os
from typing import Optional

import chess
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator

from hybrid_chess.constants import REFERENCE_DEFAULT_DEPTH
from hybrid_chess.errors import MoveFailure
from hybrid_chess.hybrid import EngineMode, HybridAI, HybridConfig
from hybrid_chess.position import ChessPosition
from hybrid_chess.remote import HttpMoveSuggester, ProviderConfig, UciReferenceChannel

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO)
_log = logging.getLogger(__name__)

SUGGESTER_URL_ENV = "CHESS_AI_SUGGESTER_URL"
REFERENCE_ENGINE_ENV = "CHESS_AI_REFERENCE_ENGINE"

# HTTP status for each failure kind.
FAILURE_STATUS: dict[MoveFailure, int] = {
    MoveFailure.NO_LEGAL_MOVES: 400,
    MoveFailure.RATE_LIMITED: 429,
    MoveFailure.INVALID_MOVE_RETURNED: 502,
    MoveFailure.PROVIDER_ERROR: 502,
    MoveFailure.TIMEOUT_EXPIRED: 504,
    MoveFailure.REFERENCE_ENGINE_UNAVAILABLE: 503,
}

app = FastAPI(title="Hybrid Chess AI", version="1.0.0")


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class MoveRequest(BaseModel):
    """
    Client request.

    Fields:
        fen:          Full FEN of the current position.
        move_history: SAN moves so far (forwarded to the suggester).
        mode:         local, custom_remote or reference_remote.
        time_limit:   Seconds for local/reference search, clamped to [0.1, 30].
        depth:        Depth cap (local) or requested depth (reference).
        provider:     Language-model settings, required for custom_remote.
    """

    model_config = ConfigDict(populate_by_name=True)

    fen: str
    move_history: list[str] = Field(default_factory=list, alias="moveHistory")
    mode: EngineMode = EngineMode.LOCAL
    time_limit: float = 1.0
    depth: Optional[int] = None
    provider: Optional[ProviderConfig] = None

    @field_validator("time_limit")
    @classmethod
    def clamp_time_limit(cls, v: float) -> float:
        return max(0.1, min(v, 30.0))


class MoveResponse(BaseModel):
    """
    Chosen move.

    Fields:
        move:   SAN of the chosen move.
        uci:    The same move in coordinate notation.
        fen:    FEN after the move.
        source: Engine that chose the move.
        score:  Local-search score in centipawns (side to move), if any.
        depth:  Local-search depth reached, if any.
        detail: Remote failure that led to a local fallback, if any.
    """

    move: str
    uci: str
    fen: str
    source: EngineMode
    score: Optional[int] = None
    depth: Optional[int] = None
    detail: str = ""


def build_engine(request: MoveRequest) -> HybridAI:
    """Create the orchestrator for one request, wired for the requested mode."""
    time_limit_ms = int(request.time_limit * 1000)
    engine = HybridAI(HybridConfig(time_limit_ms=time_limit_ms, depth=request.depth))

    if request.mode is EngineMode.CUSTOM_REMOTE:
        url = os.environ.get(SUGGESTER_URL_ENV)
        if not url:
            raise HTTPException(status_code=503, detail=f"{SUGGESTER_URL_ENV} is not set")
        if request.provider is None:
            raise HTTPException(status_code=400, detail="custom_remote mode needs a provider config")
        engine.set_custom_mode(request.provider, HttpMoveSuggester(url))
    elif request.mode is EngineMode.REFERENCE_REMOTE:
        command = os.environ.get(REFERENCE_ENGINE_ENV)
        if not command:
            raise HTTPException(status_code=503, detail=f"{REFERENCE_ENGINE_ENV} is not set")
        engine.set_reference_mode(
            depth=request.depth or REFERENCE_DEFAULT_DEPTH,
            time_limit_ms=time_limit_ms,
            channel=UciReferenceChannel(command),
        )
    return engine


# ---------------------------------------------------------------------------
# API routes
# ---------------------------------------------------------------------------


@app.post("/api/move", response_model=MoveResponse)
async def api_move(request: MoveRequest) -> MoveResponse:
    """
    Choose a move for the given position.

    Raises:
        HTTPException 400: Malformed FEN or game already over.
        HTTPException 429/502/503/504: Remote engine failure (see FAILURE_STATUS).
    """
    try:
        board = chess.Board(request.fen)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid FEN: {exc}") from exc

    if board.is_game_over():
        raise HTTPException(status_code=400, detail=f"Game is already over: {board.result()}")

    position = ChessPosition.from_board(board)
    engine = build_engine(request)
    try:
        result = await engine.get_best_move(
            request.fen, position.legal_moves(), position, request.move_history
        )
    finally:
        await engine.aclose()

    if not result.ok:
        failure = result.failure or MoveFailure.PROVIDER_ERROR
        _log.info("mode=%s failure=%s detail=%s", result.source.value, failure.value, result.detail)
        raise HTTPException(
            status_code=FAILURE_STATUS[failure],
            detail={"failure": failure.value, "source": result.source.value, "message": result.detail},
        )

    move = board.parse_san(result.move)
    _log.info(
        "move=%s source=%s score=%s depth=%s fen=%s",
        result.move, result.source.value, result.score, result.depth, request.fen[:40],
    )
    board.push(move)
    return MoveResponse(
        move=result.move,
        uci=move.uci(),
        fen=board.fen(),
        source=result.source,
        score=result.score,
        depth=result.depth,
        detail=result.detail,
    )
