from abc import ABC, abstractmethod
from typing import Any


class LogWriter(ABC):
    @abstractmethod
    def bind(
        self, *, path: list[str] | None = None, labels: dict[str, str] | None = None
    ) -> "LogWriter":
        pass

    @abstractmethod
    def scalar(self, metric: str, value: float, **kwargs) -> None:
        pass

    @abstractmethod
    def hist(self, metric: str, values: Any, **kwargs) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass
