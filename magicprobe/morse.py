"""Morse-code blinker for the error LED."""

from __future__ import annotations

from collections import deque

_LETTERS = {
    "A": ".-", "B": "-...", "C": "-.-.", "D": "-..", "E": ".",
    "F": "..-.", "G": "--.", "H": "....", "I": "..", "J": ".---",
    "K": "-.-", "L": ".-..", "M": "--", "N": "-.", "O": "---",
    "P": ".--.", "Q": "--.-", "R": ".-.", "S": "...", "T": "-",
    "U": "..-", "V": "...-", "W": ".--", "X": "-..-", "Y": "-.--",
    "Z": "--..",
}

_GAP = (False,) * 4


def _pattern(symbols: str) -> tuple[bool, ...]:
    elements = "0".join("1" if s == "." else "111" for s in symbols)
    return tuple(bit == "1" for bit in elements + "000")


_PATTERNS = {letter: _pattern(code) for letter, code in _LETTERS.items()}


class Morse:
    """Produces the on/off LED state for a message, one tick per update()."""

    def __init__(self) -> None:
        self.msg: str | None = None
        self.repeat = False
        self._pos: int | None = None
        self._bits: deque[bool] = deque()

    def start(self, msg: str | None, repeat: bool = False) -> None:
        """Begin sending *msg*; None stops any message in progress."""
        self.msg = msg
        self.repeat = bool(repeat)
        self._pos = None if msg is None else 0
        self._bits.clear()

    def update(self) -> bool:
        """Advance one tick and return whether the LED should be lit."""
        if self._pos is None or self.msg is None:
            return False
        if not self._bits:
            if self._pos >= len(self.msg):
                if not self.repeat:
                    self._pos = None
                    return False
                self._pos = 0
            char = self.msg[self._pos] if self.msg else "\0"
            self._pos += 1
            self._bits.extend(_PATTERNS.get(char, _GAP))
        return self._bits.popleft()