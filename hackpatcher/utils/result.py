"""Per-entry outcomes of batch actions (Ok/Err)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Iterable, List, Optional, Tuple, TypeGuard, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    path: Optional[str] = None


@dataclass(frozen=True)
class Err:
    error: Exception
    path: Optional[str] = None

    @property
    def error_code(self) -> str:
        return str(getattr(self.error, "error_code", type(self.error).__name__))


Result = Union[Ok[T], Err]


def is_err(result: Result[T]) -> TypeGuard[Err]:
    return isinstance(result, Err)


def unwrap(result: Result[T]) -> T:
    if isinstance(result, Ok):
        return result.value
    raise result.error


def partition(results: Iterable[Result[T]]) -> Tuple[List[Ok[T]], List[Err]]:
    """Split results into successes and failures, keeping order."""
    oks: List[Ok[T]] = []
    errs: List[Err] = []
    for result in results:
        if isinstance(result, Ok):
            oks.append(result)
        else:
            errs.append(result)
    return oks, errs
