"""Use-case base class. One class per verb; each exposes a single ``execute``."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class UseCase(ABC):
    @abstractmethod
    def execute(self, *args: Any, **kwargs: Any) -> Any:
        ...

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.execute(*args, **kwargs)
