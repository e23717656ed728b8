"""External command runner interface"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence


@dataclass(frozen=True)
class CommandOutput:
    """Everything the caller learns about one child process"""

    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    timed_out: bool = False
    failed_to_start: bool = False

    @property
    def success(self) -> bool:
        return not self.timed_out and not self.failed_to_start and self.exit_code == 0


CommandCallback = Callable[[CommandOutput], None]


class ICommandRunner(ABC):
    """Spawns external tools without blocking the event loop"""

    @abstractmethod
    def run(
        self,
        program: str,
        args: Sequence[str],
        timeout_ms: int,
        callback: CommandCallback,
    ) -> None:
        """Start program and deliver its CommandOutput to callback on completion

        The callback is invoked exactly once, on the event-loop thread.
        """
        pass

    @abstractmethod
    def terminate_all(self) -> None:
        """Terminate every child still running"""
        pass

    @abstractmethod
    def in_flight(self) -> int:
        """Number of children still running"""
        pass


__all__ = ["CommandOutput", "CommandCallback", "ICommandRunner"]
