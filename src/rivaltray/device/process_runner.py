"""Non-blocking external command execution on the Qt event loop

Every child process is a QProcess owned by the loop thread; completion,
start failure and timeout all arrive as loop callbacks, so callers never
block while rivalcfg or rsvg-convert runs.
"""

import shutil
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set

from loguru import logger
from PySide6.QtCore import QProcess, QTimer

from ..core.interfaces.process import CommandCallback, CommandOutput, ICommandRunner

# How long terminate_all() waits for a child before killing it
TERMINATE_GRACE_MS = 500


@dataclass(eq=False)
class _Job:
    program: str
    args: List[str]
    process: QProcess
    callback: CommandCallback
    timer: QTimer
    timed_out: bool = False
    done: bool = False
    cancelled: bool = False


def resolve_program(program: str) -> Optional[str]:
    """Absolute path of program on PATH (or as given), None if missing"""
    return shutil.which(program)


class ProcessRunner(ICommandRunner):
    """QProcess-backed ICommandRunner"""

    def __init__(self):
        self._jobs: Set[_Job] = set()

    def run(
        self,
        program: str,
        args: Sequence[str],
        timeout_ms: int,
        callback: CommandCallback,
    ) -> None:
        resolved = resolve_program(program)
        if resolved is None:
            logger.debug("{} not found on PATH", program)
            output = CommandOutput(stderr=f"{program}: command not found", failed_to_start=True)
            # Always complete asynchronously so callers see one code path
            QTimer.singleShot(0, lambda: callback(output))
            return

        process = QProcess()
        process.setProgram(resolved)
        process.setArguments([str(a) for a in args])

        timer = QTimer()
        timer.setSingleShot(True)

        job = _Job(program=program, args=list(args), process=process, callback=callback, timer=timer)
        self._jobs.add(job)

        timer.timeout.connect(lambda: self._on_timeout(job))
        process.finished.connect(lambda code, status: self._on_finished(job, code, status))
        process.errorOccurred.connect(lambda error: self._on_error(job, error))

        logger.debug("Starting {} {} (timeout {} ms)", resolved, " ".join(job.args), timeout_ms)
        process.start()
        timer.start(max(1, int(timeout_ms)))

    def _on_timeout(self, job: _Job) -> None:
        if job.done:
            return
        job.timed_out = True
        logger.debug("{} timed out, killing pid {}", job.program, job.process.processId())
        job.process.kill()

    def _on_error(self, job: _Job, error: QProcess.ProcessError) -> None:
        if job.done:
            return
        if error == QProcess.ProcessError.FailedToStart and not job.timed_out:
            self._complete(
                job,
                CommandOutput(
                    stderr=f"Failed to start {job.program}: {job.process.errorString()}",
                    failed_to_start=True,
                ),
            )
        # Crashes and kills are reported through finished()

    def _on_finished(self, job: _Job, exit_code: int, exit_status: QProcess.ExitStatus) -> None:
        if job.done:
            return
        stdout = bytes(job.process.readAllStandardOutput().data()).decode("utf-8", errors="replace")
        stderr = bytes(job.process.readAllStandardError().data()).decode("utf-8", errors="replace")
        crashed = exit_status == QProcess.ExitStatus.CrashExit
        self._complete(
            job,
            CommandOutput(
                stdout=stdout,
                stderr=stderr,
                exit_code=None if crashed else exit_code,
                timed_out=job.timed_out,
            ),
        )

    def _complete(self, job: _Job, output: CommandOutput) -> None:
        job.done = True
        job.timer.stop()
        self._jobs.discard(job)
        job.process.deleteLater()

        logger.debug(
            "{} finished: exit={} timed_out={} failed_to_start={}",
            job.program,
            output.exit_code,
            output.timed_out,
            output.failed_to_start,
        )
        if not job.cancelled:
            job.callback(output)

    def terminate_all(self) -> None:
        """Terminate every running child; callbacks of cancelled jobs are dropped"""
        for job in list(self._jobs):
            job.cancelled = True
            job.timer.stop()
            if job.process.state() != QProcess.ProcessState.NotRunning:
                logger.debug("Terminating {} (pid {})", job.program, job.process.processId())
                job.process.terminate()
                if not job.process.waitForFinished(TERMINATE_GRACE_MS):
                    job.process.kill()
                    job.process.waitForFinished(TERMINATE_GRACE_MS)
            job.done = True
            job.process.deleteLater()
        self._jobs.clear()

    def in_flight(self) -> int:
        return len(self._jobs)
