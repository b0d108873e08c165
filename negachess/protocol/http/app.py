from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from .error import (
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
    value_error_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from .session import InMemorySessionStore, Session
from ...config import AppConfig
from ...engine.board import Board
from ...engine.game import Game
from ...engine.perft import perft as perft_nodes
from ...search.service import SearchResult


logger = logging.getLogger(__name__)

# perft is exponential; keep the endpoint from tying up a worker
MAX_PERFT_DEPTH = 4


class CreateGameRequest(BaseModel):
    fen: Optional[str] = Field(default=None, description="Start from this FEN")


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str


class SetPositionRequest(BaseModel):
    fen: str = Field(..., description="FEN string")


class MoveRequest(BaseModel):
    move: str = Field(..., description="Square-pair move, e.g., e2e4 or e7e8q")


class SearchRequest(BaseModel):
    depth: Optional[int] = Field(default=None, ge=1, le=64)
    movetime_ms: Optional[int] = Field(default=None, ge=1)


class PerftRequest(BaseModel):
    fen: Optional[str] = None
    depth: int = Field(default=1, ge=0, le=MAX_PERFT_DEPTH)


class GameState(BaseModel):
    game_id: str
    fen: str
    board: str
    side_to_move: str
    legal_moves: List[str]
    in_check: bool
    checkmate: bool
    stalemate: bool
    last_move: Optional[str]
    move_history: List[str]


class SearchResponse(BaseModel):
    best_move: Optional[str]
    score: Optional[Dict[str, int]]
    nodes: int
    depth: int
    time_ms: int
    cancelled: bool


class PlayResponse(BaseModel):
    search: SearchResponse
    state: GameState


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    cfg = config or AppConfig.from_env()
    app = FastAPI(title="negachess API", version="0.1.0")

    logging.basicConfig(level=cfg.log_level)

    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, exception_handler)

    store = InMemorySessionStore(cfg.search)
    app.state.store = store

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        game = Game.from_fen(req.fen) if req is not None and req.fen else Game.new()
        game_id = store.create(game)
        logger.info("created game %s", game_id)
        return CreateGameResponse(game_id=game_id, fen=game.to_fen())

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    def get_state(game_id: str) -> GameState:
        session = _require_session(store, game_id)
        with session.lock:
            return _game_state(game_id, session.game)

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        _require_session(store, game_id)
        store.set_game(game_id, Game.from_fen(req.fen))
        session = _require_session(store, game_id)
        with session.lock:
            return _game_state(game_id, session.game)

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    def make_move(game_id: str, req: MoveRequest) -> GameState:
        session = _require_session(store, game_id)
        with session.lock:
            session.game.apply_uci(req.move)
            return _game_state(game_id, session.game)

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    def undo(game_id: str) -> GameState:
        session = _require_session(store, game_id)
        with session.lock:
            session.game.undo_move()
            return _game_state(game_id, session.game)

    @app.post("/api/games/{game_id}/search", response_model=SearchResponse)
    def search(game_id: str, req: Optional[SearchRequest] = None) -> SearchResponse:
        session = _require_session(store, game_id)
        req = req or SearchRequest()
        with session.lock:
            res = session.search.search(
                session.game.board, depth=req.depth, movetime_ms=req.movetime_ms
            )
        return _search_response(res)

    @app.post("/api/games/{game_id}/play", response_model=PlayResponse)
    def play(game_id: str, req: Optional[SearchRequest] = None) -> PlayResponse:
        session = _require_session(store, game_id)
        req = req or SearchRequest()
        with session.lock:
            res = session.search.search(
                session.game.board, depth=req.depth, movetime_ms=req.movetime_ms
            )
            if res.best_move is None:
                raise HTTPException(status_code=409, detail="game is over")
            session.game.apply_move(res.best_move)
            return PlayResponse(search=_search_response(res), state=_game_state(game_id, session.game))

    @app.post("/api/perft")
    def perft(req: PerftRequest) -> Dict[str, Any]:
        board = Board.from_fen(req.fen) if req.fen else Board.new()
        return {"fen": board.to_fen(), "depth": req.depth, "nodes": perft_nodes(board, req.depth)}

    return app


def _require_session(store: InMemorySessionStore, game_id: str) -> Session:
    session = store.get(game_id)
    if session is None:
        raise HTTPException(status_code=404, detail="game not found")
    return session


def _game_state(game_id: str, game: Game) -> GameState:
    status = game.status()
    history = game.move_history_uci()
    return GameState(
        game_id=game_id,
        fen=game.to_fen(),
        board=game.board.to_string(),
        side_to_move=game.board.side_to_move.value,
        legal_moves=[m.to_uci() for m in status.moves],
        in_check=status.is_check,
        checkmate=status.is_checkmate(),
        stalemate=status.is_stalemate(),
        last_move=history[-1] if history else None,
        move_history=history,
    )


def _search_response(res: SearchResult) -> SearchResponse:
    # Score object: either cp or mate
    score: Optional[Dict[str, int]] = None
    if res.mate_in is not None:
        score = {"mate": res.mate_in}
    elif res.score_cp is not None:
        score = {"cp": res.score_cp}
    return SearchResponse(
        best_move=res.best_move.to_uci() if res.best_move else None,
        score=score,
        nodes=res.nodes,
        depth=res.depth,
        time_ms=res.time_ms,
        cancelled=res.cancelled,
    )
