"""Fake command runner"""
from collections import deque
from dataclasses import dataclass
from typing import List, Optional

from rivaltray.core.interfaces.process import CommandCallback, CommandOutput, ICommandRunner


@dataclass
class RecordedCall:
    program: str
    args: List[str]
    timeout_ms: int
    callback: CommandCallback
    completed: bool = False


class FakeCommandRunner(ICommandRunner):
    """Answers from a queue of canned outputs

    With immediate=True the callback runs inside run(); otherwise calls are
    held until complete() is called, which lets tests observe a cycle that
    is still in flight.
    """

    def __init__(self, outputs=None, immediate: bool = True, default: Optional[CommandOutput] = None):
        self.outputs = deque(outputs or [])
        self.immediate = immediate
        self.default = default or CommandOutput(stdout="Discharging [=====] 50 %\n", exit_code=0)
        self.calls: List[RecordedCall] = []
        self.terminated = 0

    def queue(self, *outputs: CommandOutput) -> None:
        self.outputs.extend(outputs)

    def run(self, program, args, timeout_ms, callback) -> None:
        call = RecordedCall(program, list(args), timeout_ms, callback)
        self.calls.append(call)
        if self.immediate:
            self._deliver(call)

    def _deliver(self, call: RecordedCall, output: Optional[CommandOutput] = None) -> None:
        if output is None:
            output = self.outputs.popleft() if self.outputs else self.default
        call.completed = True
        call.callback(output)

    def pending(self) -> List[RecordedCall]:
        return [c for c in self.calls if not c.completed]

    def complete(self, output: Optional[CommandOutput] = None) -> None:
        """Finish the oldest held call"""
        self._deliver(self.pending()[0], output)

    def terminate_all(self) -> None:
        self.terminated += 1
        for call in self.pending():
            call.completed = True

    def in_flight(self) -> int:
        return len(self.pending())

    def args_of(self, index: int = -1) -> List[str]:
        return self.calls[index].args


def battery_output(percent: int, charging: bool = False) -> CommandOutput:
    state = "Charging" if charging else "Discharging"
    return CommandOutput(stdout=f"{state} [=====     ] {percent} %\n", exit_code=0)
