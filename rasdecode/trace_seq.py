"""A growable text sequence used to build trace output."""

import sys


class TraceSeq:
    """Accumulates formatted text until it is written out."""

    def __init__(self):
        self._parts = []
        self._length = 0
        self._destroyed = False

    def _check(self):
        if self._destroyed:
            raise RuntimeError("Usage of trace_seq after it was destroyed")

    def _append(self, text):
        self._parts.append(text)
        self._length += len(text)

    def __len__(self):
        self._check()
        return self._length

    @property
    def text(self):
        """The text gathered so far."""
        self._check()
        joined = "".join(self._parts)
        self._parts = [joined] if joined else []
        return joined

    def __str__(self):
        return self.text

    def printf(self, fmt, *args):
        """Append text formatted with printf-style conversions; return 1."""
        self._check()
        self._append(fmt % args)
        return 1

    def puts(self, text):
        """Append a plain string; return its length."""
        self._check()
        self._append(text)
        return len(text)

    def putc(self, char):
        """Append one character, given as a one-character string or a byte value."""
        self._check()
        if isinstance(char, int):
            if not 0 <= char <= 0xFF:
                raise ValueError(f"character value out of range: {char}")
            char = chr(char)
        elif len(char) != 1:
            raise ValueError("putc takes exactly one character")
        self._append(char)
        return 1

    def destroy(self):
        """Release the text; any later use raises RuntimeError."""
        self._check()
        self._parts = []
        self._length = 0
        self._destroyed = True

    def do_printf(self):
        """Write the gathered text to standard output; return the characters written."""
        text = self.text
        sys.stdout.write(text)
        return len(text)