"""
Lexical cleanup of DDL text before pattern matching.

Comments and quoted strings are matched by a single alternation so that a
comment marker inside a literal (or a quote inside a comment) is consumed by
whichever construct starts first.
"""
import re
from typing import Optional

_LEXEME_RE = re.compile(
    r"""
      (?P<line_comment>--[^\r\n]*)
    | (?P<block_comment>/\*.*?\*/)
    | (?P<single_quoted>'(?:\\.|''|[^'\\])*')
    | (?P<double_quoted>"(?:\\.|""|[^"\\])*")
    """,
    re.DOTALL | re.VERBOSE,
)

EMPTY_STRING = "''"
EMPTY_IDENTIFIER = '""'


def _sanitize_lexeme(match: "re.Match") -> str:
    kind = match.lastgroup
    if kind in ("line_comment", "block_comment"):
        return " "
    if kind == "single_quoted":
        return EMPTY_STRING
    return EMPTY_IDENTIFIER


def _strip_comment_lexeme(match: "re.Match") -> str:
    if match.lastgroup in ("line_comment", "block_comment"):
        return " "
    return match.group(0)


def sanitize(ddl: Optional[str]) -> str:
    """Blank out comments and string contents of a DDL statement.

    Line and block comments become a single space, single-quoted literals
    become ``''`` and double-quoted strings become ``""``. Malformed input
    (e.g. an unterminated comment) is left as-is past the point of failure.
    """
    if not ddl:
        return ""
    return _LEXEME_RE.sub(_sanitize_lexeme, ddl)


def strip_comments(ddl: Optional[str]) -> str:
    """Remove comments only, keeping string literals intact."""
    if not ddl:
        return ""
    return _LEXEME_RE.sub(_strip_comment_lexeme, ddl)
