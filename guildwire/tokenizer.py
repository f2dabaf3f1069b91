"""Argument tokenizer for command strings.

Splits the text after a command name into an argument list. Never
raises: unmatched quotes are ordinary characters and malformed quoting
degrades to whitespace splitting.
"""

import re
from typing import List, Union

from .models import ArgsType

# A closed quoted span, or a run of non-whitespace. The surrounding \s*
# lets match.end() point at the start of the next token.
_TOKEN_QUOTES = re.compile(r"""\s*(?:(["'])(.*?)\1|(\S+))\s*""", re.DOTALL)
_TOKEN_DOUBLE = re.compile(r"""\s*(?:(")(.*?)"|(\S+))\s*""", re.DOTALL)

_ENCLOSED_QUOTES = re.compile(r"""^(["'])(.*)\1$""", re.DOTALL)
_ENCLOSED_DOUBLE = re.compile(r"""^(")(.*)"$""", re.DOTALL)


def tokenize(
    raw: str,
    args_type: Union[ArgsType, str] = ArgsType.SINGLE,
    args_count: int = 0,
    allow_single_quotes: bool = True,
) -> List[str]:
    """Split a raw argument string.

    Args:
        raw: Text following the command name.
        args_type: SINGLE returns the trimmed text as one argument;
            MULTIPLE splits on whitespace outside quoted spans.
        args_count: For MULTIPLE, the maximum number of arguments. The
            last one receives the unparsed rest of the string. 0 means
            no limit.
        allow_single_quotes: Whether single quotes delimit spans too.
            Double quotes always do.

    Returns:
        The argument list (empty for blank input).
    """
    text = (raw or "").strip()
    if not text:
        return []
    if ArgsType(args_type) is ArgsType.SINGLE:
        return [text]

    token_re = _TOKEN_QUOTES if allow_single_quotes else _TOKEN_DOUBLE
    result: List[str] = []
    pos = 0
    limit = args_count - 1 if args_count > 0 else None

    while pos < len(text) and (limit is None or len(result) < limit):
        match = token_re.match(text, pos)
        if match is None or match.end() == pos:
            break
        result.append(match.group(2) if match.group(1) else match.group(3))
        pos = match.end()

    if pos < len(text):
        rest = text[pos:].strip()
        enclosed = (_ENCLOSED_QUOTES if allow_single_quotes else _ENCLOSED_DOUBLE).match(rest)
        if enclosed and not _has_inner_delimiter(enclosed.group(2), enclosed.group(1)):
            rest = enclosed.group(2)
        result.append(rest)
    elif limit is not None and len(result) == limit:
        # Free-form slot present but empty
        result.append("")

    return result


def _has_inner_delimiter(body: str, quote: str) -> bool:
    """True when the body contains the enclosing quote (several spans)."""
    return quote in body
