import json
import math
from typing import Any

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_json_tokens(value: Any) -> int:
    """Estimates the tokens of a value by its JSON serialization."""
    return estimate_tokens(json.dumps(value, ensure_ascii=False))


def truncate_to_tokens(text: str, tokens: int) -> str:
    """Cuts text so that its estimate is at most the given number of tokens."""
    return text[: max(tokens, 0) * CHARS_PER_TOKEN]


class TokenBudget:
    """
    Tracks estimated token usage against a fixed total.

    Shares are fractions of the total (0.7 means 70% of the budget); a
    category's entries may only be charged while usage stays within its share.
    """

    def __init__(self, total: int):
        if total <= 0:
            raise ValueError("Token budget must be a positive integer.")
        self.total = total
        self.used = 0

    def limit(self, share: float = 1.0) -> float:
        return self.total * share

    def remaining(self, share: float = 1.0) -> int:
        return max(int(self.limit(share)) - self.used, 0)

    def below(self, share: float) -> bool:
        """Whether usage is still under the given share of the budget."""
        return self.used < self.limit(share)

    def fits(self, tokens: int, share: float = 1.0) -> bool:
        """Whether charging tokens keeps usage within the given share."""
        return self.used + tokens <= self.limit(share)

    def charge(self, tokens: int) -> None:
        self.used += tokens

    def __repr__(self) -> str:
        return f"TokenBudget(used={self.used}, total={self.total})"
