"""
Parley Programming Language Parser
pyparsing grammar turning source text into CST nodes tagged with their position
"""

from typing import Any, List, Optional
from dataclasses import dataclass, field

from pyparsing import (
    Word, alphas, alphanums, Optional as PyParsingOptional, ZeroOrMore,
    Forward, Group, Keyword, MatchFirst, ParseException, Suppress,
    StringEnd, ParserElement, Combine, lineno as line_of, col as column_of
)

from error_handling import ParleyParseError, RESERVED_WORDS

ParserElement.enable_packrat()

IDENT_START = alphas + "_"
IDENT_BODY = alphanums + "_"


@dataclass(frozen=True)
class SourceSpan:
    """Where a node starts in its source file"""
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


@dataclass(frozen=True)
class CSTNode:
    type: str
    value: Any
    children: List['CSTNode'] = field(default_factory=list)
    span: Optional[SourceSpan] = None


class ParleyParser:
    """Parses programs and single statements.

    Statements are `let NAME = EXPR`, `send EXPR EXPR` or a bare EXPR, optionally
    followed by `;`. Expressions are blocks, `spawn EXPR`, `receive`, `root`,
    `'symbol`, names and parenthesized expressions. `#` comments run to end of line.
    """

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.filename = "<input>"

        expression = Forward()
        statement = Forward()
        terminated = statement + PyParsingOptional(Suppress(";"))

        reserved = MatchFirst([Keyword(word) for word in RESERVED_WORDS])
        name = Combine(~reserved + Word(IDENT_START, IDENT_BODY))

        def node(node_type, value=None, children=None):
            return lambda s, loc, t: self._make_node(
                s, loc, node_type, value(t) if value else None, children(t) if children else [])

        expression <<= (
            (Suppress("{") + Group(ZeroOrMore(terminated)) + Suppress("}")).set_parse_action(
                node("BLOCK", children=lambda t: list(t[0])))
            | (Suppress(Keyword("spawn")) + expression).set_parse_action(
                node("SPAWN", children=lambda t: [t[0]]))
            | Keyword("receive").set_parse_action(node("RECEIVE"))
            | Keyword("root").set_parse_action(node("ROOT"))
            | Combine(Suppress("'") + Word(IDENT_START, IDENT_BODY)).set_parse_action(
                node("SYMBOL", value=lambda t: t[0]))
            | name.copy().set_parse_action(node("IDENTIFIER", value=lambda t: t[0]))
            | Suppress("(") + expression + Suppress(")")
        )

        statement <<= (
            (Suppress(Keyword("let")) + name + Suppress("=") + expression).set_parse_action(
                node("LET", value=lambda t: t[0], children=lambda t: [t[1]]))
            | (Suppress(Keyword("send")) + expression + expression).set_parse_action(
                node("SEND", children=lambda t: [t[0], t[1]]))
            | expression
        )

        self.expression = expression
        self.program = ZeroOrMore(terminated) + StringEnd()
        self.single_statement = terminated + StringEnd()

    def _make_node(self, text: str, loc: int, node_type: str, value: Any,
                   children: List[CSTNode]) -> CSTNode:
        span = SourceSpan(self.filename, line_of(loc, text), column_of(loc, text))
        if self.debug:
            print(f"DEBUG: parsed {node_type} at {span}")
        return CSTNode(node_type, value, children, span)

    def _run(self, element: ParserElement, text: str, filename: str):
        self.filename = filename
        # Blank out comments so line and column numbers still match the file
        stripped = '\n'.join(line.split('#', 1)[0] for line in text.split('\n'))
        try:
            return element.parse_string(stripped, parse_all=True)
        except ParseException as e:
            raise ParleyParseError.from_parse_exception(e, filename) from e

    def parse_string(self, text: str, filename: str = "<input>") -> List[CSTNode]:
        """Parse a complete program; comment-only text yields no statements"""
        return list(self._run(self.program, text, filename))

    def parse_statement(self, text: str, filename: str = "<input>") -> CSTNode:
        return self._run(self.single_statement, text, filename)[0]

    def parse_file(self, filepath: str) -> List[CSTNode]:
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise ParleyParseError(f"File not found: {filepath}", filepath)
        except UnicodeDecodeError as e:
            raise ParleyParseError(f"Cannot decode file {filepath}: {e}", filepath)
        return self.parse_string(content, filepath)


def create_parser(debug: bool = False) -> ParleyParser:
    return ParleyParser(debug=debug)


def create_debug_parser() -> ParleyParser:
    return ParleyParser(debug=True)


def pretty_print_cst(cst: CSTNode, indent: int = 0) -> str:
    """One line per node, children indented under their parent"""
    label = cst.type if cst.value is None else f"{cst.type}({cst.value!r})"
    lines = ["  " * indent + label]
    lines.extend(pretty_print_cst(child, indent + 1) for child in cst.children)
    return "\n".join(lines)
