"""Tagged success/failure result for service operations.

Order operations hand back Ok(payload) or Err(error) instead of a loose
status dict; routers unwrap Ok into the response envelope and raise the
Err payload so the global AppError handler renders it.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]
