# client/results.py
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: bool = True


@dataclass(frozen=True)
class Err:
    reason: str
    status_code: Optional[int] = None
    ok: bool = False


Result = Union[Ok[T], Err]
