"""
Parse error reporting for Parley
Wraps pyparsing failures with the offending source line and syntax hints
"""

from typing import List, Optional
from pyparsing import ParseException


RESERVED_WORDS = ("let", "send", "spawn", "receive", "root")


def suggest_fixes(found: str) -> List[str]:
    """Hints keyed on the text sitting at the failure point"""
    if not found:
        return ["The statement looks incomplete - 'send' needs a target and a message"]

    hints = []
    if found.startswith("="):
        hints.append("Bindings are written 'let name = expr'")
    elif found.startswith('"'):
        hints.append("Parley has no strings - use a symbol such as 'ping")
    elif found.startswith("'"):
        hints.append("Symbols need a name right after the quote, e.g. 'ping")
    elif found[0] in "{}":
        hints.append("Check that every '{' has a matching '}'")
    elif found[0] in "()":
        hints.append("Parentheses may only wrap a single expression")

    word = found.split()[0].rstrip(";{}()")
    if word in RESERVED_WORDS:
        hints.append(f"'{word}' is a reserved word and cannot be used as a name")

    return hints


class ParleyParseError(Exception):
    """Parley parsing error pointing at a line and column"""

    def __init__(self, message: str, filename: str = "<input>", line: int = 0, column: int = 0,
                 source_line: str = "", suggestions: Optional[List[str]] = None):
        self.message = message
        self.filename = filename
        self.line = line
        self.column = column
        self.source_line = source_line
        self.suggestions = suggestions or []
        super().__init__(self._format_error())

    @classmethod
    def from_parse_exception(cls, exc: ParseException, filename: str = "<input>") -> "ParleyParseError":
        found = exc.line[exc.column - 1:].strip()
        return cls(exc.msg, filename, exc.lineno, exc.column, exc.line, suggest_fixes(found))

    def _format_error(self) -> str:
        if not self.line:
            return f"Parse error: {self.message}"
        parts = [
            f"Parse error at {self.filename}:{self.line}:{self.column}: {self.message}",
            f"  {self.source_line}",
            f"  {' ' * (self.column - 1)}^",
        ]
        parts.extend(f"  hint: {hint}" for hint in self.suggestions)
        return "\n".join(parts)
