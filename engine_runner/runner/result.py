"""Aggregate result of a runner operation.

Drivers return XML fragments. The runner collects them, one per driver
call, into an EngineResult that callers treat as the result for the
whole package.
"""

from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class EngineResult:
    """Ordered collection of driver result fragments."""
    fragments: list[str] = field(default_factory=list)

    def add(self, fragment: str) -> None:
        """Append a driver's result fragment."""
        self.fragments.append(fragment)

    @property
    def is_single(self) -> bool:
        return len(self.fragments) == 1

    def as_text(self) -> str:
        """All fragments, one per line, in driver order."""
        return "\n".join(self.fragments)

    def merged(self, tag: str = "test-run") -> str:
        """All fragments wrapped in a single element."""
        body = "".join(self.fragments)
        return f"<{tag}>{body}</{tag}>"

    def __len__(self) -> int:
        return len(self.fragments)

    def __iter__(self) -> Iterator[str]:
        return iter(self.fragments)
