from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from negachess.config import SearchConfig
from negachess.engine.board import Board
from negachess.engine.move import Move
from negachess.engine.movegen import MoveGenerator, default_generator

from .negamax import MATE_SCORE, NodeResult, is_mate_score, negamax_alpha_beta_with_table
from .transposition import TranspositionTable


logger = logging.getLogger(__name__)

# Depth ceiling when only a time budget bounds the search
MAX_DEPTH = 64


@dataclass
class SearchResult:
    best_move: Optional[Move]
    evaluation: int
    score_cp: Optional[int]
    mate_in: Optional[int]
    nodes: int
    depth: int
    time_ms: int
    cancelled: bool = False
    iters: List[Dict[str, int]] = field(default_factory=list)
    tt_hits: int = 0
    tt_probes: int = 0
    tt_size: int = 0
    hashfull: int = 0


def mate_in_from_score(evaluation: int, depth: int) -> Optional[int]:
    """Moves to mate encoded in ``evaluation`` from a ``depth``-ply search.

    Positive when the side to move mates, negative when it gets mated.
    """
    if not is_mate_score(evaluation):
        return None
    remaining = abs(evaluation) - MATE_SCORE
    plies = max(0, depth - remaining)
    moves = (plies + 1) // 2
    return moves if evaluation > 0 else -moves


class SearchService:
    """Iterative deepening over alpha-beta with a wall-clock budget.

    Depth 1 always runs inline so a move is available. With a time budget,
    each deeper iteration runs on a worker thread; the caller waits on a
    single-slot queue until the deadline, then sets the shared cancel flag,
    joins the worker, and keeps the last completed depth plus the nodes the
    cancelled depth had already visited. The worker owns the
    board and the table until it has been joined.
    """

    def __init__(
        self,
        config: Optional[SearchConfig] = None,
        generator: Optional[MoveGenerator] = None,
        table: Optional[TranspositionTable] = None,
    ) -> None:
        self.config = config or SearchConfig()
        self.generator = generator or default_generator()
        self.table = table or TranspositionTable(self.config.tt_capacity)

    def search(
        self,
        board: Board,
        depth: Optional[int] = None,
        movetime_ms: Optional[int] = None,
    ) -> SearchResult:
        """Search ``board`` and return the best move of the deepest finished depth.

        Args:
            board (Board): Position to search; unchanged on return.
            depth (Optional[int]): Maximum depth. Defaults to the configured
                depth unless only ``movetime_ms`` is given.
            movetime_ms (Optional[int]): Wall-clock budget in milliseconds.

        Raises:
            ValueError: If ``depth`` or ``movetime_ms`` is not positive.
        """
        if depth is None and movetime_ms is None:
            depth = self.config.depth
            movetime_ms = self.config.movetime_ms
        if depth is not None and depth < 1:
            raise ValueError("depth must be >= 1")
        if movetime_ms is not None and movetime_ms <= 0:
            raise ValueError("movetime_ms must be positive")
        max_depth = depth if depth is not None else MAX_DEPTH

        start = time.perf_counter()
        deadline = start + movetime_ms / 1000.0 if movetime_ms is not None else None
        cancel = threading.Event()
        probes_before, hits_before = self.table.probes, self.table.hits
        cancelled = False
        iters: List[Dict[str, int]] = []

        # Depth 1 always runs to completion so there is a move to return
        last = self._run(board, 1, cancel, None)
        nodes = last.nodes
        completed_depth = 1
        self._record(iters, 1, last, start)

        for d in range(2, max_depth + 1):
            # No legal move at the root, or a forced mate either way
            if last.best_move is None or is_mate_score(last.evaluation):
                break
            iter_start = time.perf_counter()
            if deadline is None:
                result = self._run(board, d, cancel, last.best_move)
            else:
                remaining = deadline - time.perf_counter()
                if remaining <= 0:
                    cancelled = True
                    break
                result, finished = self._run_with_deadline(
                    board, d, cancel, last.best_move, remaining
                )
                if not finished:
                    # Work done before the cancel landed still counts
                    nodes += result.nodes
                    cancelled = True
                    logger.info(
                        "search cancelled at depth %d after %d ms (%d nodes); keeping depth %d",
                        d,
                        int((time.perf_counter() - start) * 1000),
                        result.nodes,
                        completed_depth,
                    )
                    break

            nodes += result.nodes
            last, completed_depth = result, d
            self._record(iters, d, result, iter_start)

        mate_in = mate_in_from_score(last.evaluation, completed_depth)
        return SearchResult(
            best_move=last.best_move,
            evaluation=last.evaluation,
            score_cp=last.evaluation if mate_in is None else None,
            mate_in=mate_in,
            nodes=nodes,
            depth=completed_depth,
            time_ms=int((time.perf_counter() - start) * 1000),
            cancelled=cancelled,
            iters=iters,
            tt_hits=self.table.hits - hits_before,
            tt_probes=self.table.probes - probes_before,
            tt_size=len(self.table),
            hashfull=self.table.hashfull(),
        )

    def reset(self) -> None:
        """Forget every stored position."""
        self.table.clear()

    def _run(
        self, board: Board, depth: int, cancel: threading.Event, principal: Optional[Move]
    ) -> NodeResult:
        return negamax_alpha_beta_with_table(
            board, self.generator, self.table, depth, cancel=cancel, principal_move=principal
        )

    def _run_with_deadline(
        self,
        board: Board,
        depth: int,
        cancel: threading.Event,
        principal: Optional[Move],
        timeout: float,
    ) -> Tuple[NodeResult, bool]:
        """Run one depth on a worker until ``timeout`` seconds pass.

        Returns the worker's result and whether the depth finished. After a
        timeout the result is the partial one the cancelled worker unwound
        with; only its node count is meaningful.
        """
        results: "queue.Queue[Union[NodeResult, Exception]]" = queue.Queue(maxsize=1)

        def work() -> None:
            try:
                results.put(self._run(board, depth, cancel, principal))
            except Exception as exc:  # handed to the caller, re-raised there
                results.put(exc)

        worker = threading.Thread(target=work, name=f"search-depth-{depth}", daemon=True)
        worker.start()
        try:
            outcome = results.get(timeout=timeout)
        except queue.Empty:
            cancel.set()
            worker.join()
            outcome = results.get_nowait()
        worker.join()
        if isinstance(outcome, Exception):
            raise outcome
        # A cancelled root unwinds without a move; a finished one always has one
        return outcome, outcome.best_move is not None

    @staticmethod
    def _record(
        iters: List[Dict[str, int]], depth: int, result: NodeResult, iter_start: float
    ) -> None:
        iter_ms = int((time.perf_counter() - iter_start) * 1000)
        iters.append({"depth": depth, "nodes": result.nodes, "time_ms": iter_ms})
        logger.info(
            "depth %d eval %d nodes %d time %d ms best %s",
            depth,
            result.evaluation,
            result.nodes,
            iter_ms,
            result.best_move.to_uci() if result.best_move is not None else "-",
        )
