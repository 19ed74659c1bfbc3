"""
Heuristic extraction of file paths, error lines and symbol names from free text.

The patterns are best-effort: there is no parsing and no false-positive
filtering. Callers treat every result as a candidate.
"""
import re
from dataclasses import dataclass, field
from typing import Iterable, List

FILE_PATTERN = re.compile(r"(?:[\w-]+/)*[\w-]+\.\w+(?::\d+)?")
ERROR_PATTERN = re.compile(r"(?:Error|Exception|Failed|TypeError|ReferenceError).*$", re.MULTILINE)
FUNCTION_PATTERN = re.compile(r"(?:at|in) (\w+)")
STACK_TRACE_PATTERN = re.compile(r"^\s*at .+$", re.MULTILINE)


@dataclass
class Signals:
    files: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    functions: List[str] = field(default_factory=list)
    stack_trace: List[str] = field(default_factory=list)


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


def extract_signals(text: str) -> Signals:
    """Pulls candidate files, errors, functions and stack-trace lines out of text."""
    files = _unique(match.split(":")[0] for match in FILE_PATTERN.findall(text))
    errors = _unique(ERROR_PATTERN.findall(text))
    functions = _unique(FUNCTION_PATTERN.findall(text))
    stack_trace = STACK_TRACE_PATTERN.findall(text)
    return Signals(files=files, errors=errors, functions=functions, stack_trace=stack_trace)
