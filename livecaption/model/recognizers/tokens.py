"""Symbol table for subword recognizers."""

from pathlib import Path
from typing import Dict, Iterable, Sequence, Union

WORD_BOUNDARY = "▁"


class TokenTable:
    """Maps token ids to symbols read from a ``<symbol> <id>`` text file."""

    def __init__(self, symbols: Dict[int, str]) -> None:
        self._symbols = dict(symbols)
        self._ids = {symbol: index for index, symbol in self._symbols.items()}

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "TokenTable":
        symbols: Dict[int, str] = {}
        with Path(path).open("r", encoding="utf-8") as fh:
            for line_no, line in enumerate(fh, start=1):
                line = line.rstrip("\n")
                if not line.strip():
                    continue
                parts = line.rsplit(maxsplit=1)
                if len(parts) == 1:
                    # Bare symbol per line; ids follow line order.
                    symbols[len(symbols)] = parts[0]
                    continue
                symbol, index = parts
                try:
                    symbols[int(index)] = symbol
                except ValueError as exc:
                    raise ValueError(f"{path}:{line_no}: bad token id {index!r}") from exc
        return cls(symbols)

    def __len__(self) -> int:
        return len(self._symbols)

    def symbol(self, token: int) -> str:
        return self._symbols.get(int(token), "")

    def id_of(self, symbol: str) -> int:
        return self._ids[symbol]

    def ids_of(self, symbols: Iterable[str]) -> tuple:
        return tuple(self._ids[s] for s in symbols if s in self._ids)

    def decode(self, tokens: Sequence[int]) -> str:
        pieces = []
        for token in tokens:
            symbol = self.symbol(token)
            if not symbol or (symbol.startswith("<") and symbol.endswith(">")):
                continue
            pieces.append(symbol)
        return "".join(pieces).replace(WORD_BOUNDARY, " ").strip()


__all__ = ["TokenTable", "WORD_BOUNDARY"]
