"""Canned spin responses for the simulator and the headless runner."""

from typing import Any, Dict, List

INITIAL_MATRIX = "KQJAP;QPAKJ;JAPQK;PKQJA"


def _money(amount: float) -> Dict[str, Any]:
    return {"amount": amount, "currency": "EUR"}


def _line_win(symbol: str, cells: List[tuple], amount: float, line_id: int | None = None) -> Dict[str, Any]:
    win: Dict[str, Any] = {
        "winType": "LINE",
        "symbol": symbol,
        "matchCount": len(cells),
        "positions": [{"row": r, "col": c} for r, c in cells],
        "amount": amount,
    }
    if line_id is not None:
        win["lineId"] = line_id
    return win


def duplicate_removal_spin() -> Dict[str, Any]:
    """Two lines over the same cells; the cascade reports each cell twice."""
    top_row = [(0, 0), (0, 1), (0, 2)]
    return {
        "round": {"roundId": "demo-dup", "roundSeq": 1, "matrixString": "KKKQP;AQPAP;JAPJA;PPKPQ"},
        "stake": _money(10),
        "win": _money(100),
        "steps": [
            {
                "index": 0,
                "type": "RESULT",
                "grid": {"matrixString": "KKKQP;AQPAP;JAPJA;PPKPQ"},
                "wins": [_line_win("K", top_row, 50, 0), _line_win("K", top_row, 50, 17)],
                "totalWin": _money(100),
            },
            {
                "index": 1,
                "type": "CASCADE",
                "gridBefore": {"matrixString": "KKKQP;AQPAP;JAPJA;PPKPQ"},
                "removedPositions": [{"row": r, "col": c} for r, c in top_row * 2],
                "movements": [],
                "refills": [
                    {"position": {"row": 0, "col": 0}, "symbol": "A"},
                    {"position": {"row": 0, "col": 1}, "symbol": "Q"},
                    {"position": {"row": 0, "col": 2}, "symbol": "P"},
                ],
                "gridAfter": {"matrixString": "AQPQP;AQPAP;JAPJA;PPKPQ"},
                "wins": [],
                "stepWin": _money(0),
                "cumulativeWin": _money(100),
            },
        ],
    }


def collapse_spin() -> Dict[str, Any]:
    """A cluster win whose cascade moves survivors with server movements."""
    cluster = [(0, 0), (1, 0), (2, 0), (2, 1)]
    return {
        "round": {"roundId": "demo-collapse", "roundSeq": 2, "matrixString": "AJKQ10;AQPAP;AAPJK;PPKPQ"},
        "stake": _money(10),
        "win": _money(120),
        "steps": [
            {
                "index": 0,
                "type": "RESULT",
                "grid": {"matrixString": "AJKQ10;AQPAP;AAPJK;PPKPQ"},
                "wins": [{
                    "winType": "CLUSTER",
                    "symbol": "A",
                    "positions": [{"row": r, "col": c} for r, c in cluster],
                    "amount": 120,
                }],
                "totalWin": _money(120),
            },
            {
                "index": 1,
                "type": "CASCADE",
                "gridBefore": {"matrixString": "AJKQ10;AQPAP;AAPJK;PPKPQ"},
                "removedPositions": [{"row": r, "col": c} for r, c in cluster],
                "movements": [
                    {"from": {"row": 1, "col": 1}, "to": {"row": 2, "col": 1}, "symbol": "Q"},
                    {"from": {"row": 0, "col": 1}, "to": {"row": 1, "col": 1}, "symbol": "J"},
                ],
                "refills": [
                    {"position": {"row": 0, "col": 0}, "symbol": "K"},
                    {"position": {"row": 1, "col": 0}, "symbol": "10"},
                    {"position": {"row": 2, "col": 0}, "symbol": "Q"},
                    {"position": {"row": 0, "col": 1}, "symbol": "A"},
                ],
                "gridAfter": {"matrixString": "KAKQ10;10JPAP;QQPJK;PPKPQ"},
                "wins": [],
                "stepWin": _money(0),
                "cumulativeWin": _money(120),
            },
        ],
    }


def losing_spin() -> Dict[str, Any]:
    return {
        "round": {"roundId": "demo-lose", "roundSeq": 3, "matrixString": INITIAL_MATRIX},
        "stake": _money(10),
        "win": _money(0),
        "steps": [
            {
                "index": 0,
                "type": "RESULT",
                "grid": {"matrixString": INITIAL_MATRIX},
                "wins": [],
                "totalWin": _money(0),
            },
        ],
    }


def demo_spins() -> List[Dict[str, Any]]:
    """Demo responses in play order."""
    return [duplicate_removal_spin(), collapse_spin(), losing_spin()]
