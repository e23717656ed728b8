"""Lifecycle base for components that own an external resource

The config file, the runtime icon directory and similar resources are
acquired in start() and released in stop(). Failures never propagate:
they leave the component in ERROR and are kept in ``last_error`` so the
caller can report why startup failed.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from ...utils import LogCategory, app_logger


class ComponentState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    ERROR = "error"


class LifecycleComponent(ABC):
    """start()/stop() around _do_start()/_do_stop()

    Usage:
        class RuntimeDir(LifecycleComponent):
            def __init__(self, path):
                super().__init__("RuntimeDir")
                self._path = path

            def _do_start(self) -> bool:
                self._path.mkdir(mode=0o700)
                return True

            def _do_stop(self) -> bool:
                shutil.rmtree(self._path)
                return True
    """

    def __init__(self, component_name: str):
        self._component_name = component_name
        self._state = ComponentState.STOPPED
        self._last_error: Optional[Exception] = None

    def start(self) -> bool:
        """Acquire the resource; True if the component is running afterwards"""
        if self._state == ComponentState.RUNNING:
            return True
        return self._transition("start", self._do_start, ComponentState.RUNNING)

    def stop(self) -> bool:
        """Release the resource; True if the component is stopped afterwards"""
        if self._state == ComponentState.STOPPED:
            return True
        return self._transition("stop", self._do_stop, ComponentState.STOPPED)

    def _transition(self, verb: str, step: Callable[[], bool], target: ComponentState) -> bool:
        try:
            ok = step()
        except Exception as e:
            self._state = ComponentState.ERROR
            self._last_error = e
            app_logger.log_error(e, f"{self._component_name}_{verb}")
            return False

        if not ok:
            self._state = ComponentState.ERROR
            app_logger.warning(
                f"{self._component_name} {verb} reported failure",
                LogCategory.STARTUP,
                component=self._component_name,
            )
            return False

        self._state = target
        self._last_error = None
        app_logger.debug(f"{self._component_name} {verb} ok", LogCategory.STARTUP, component=self._component_name)
        return True

    @abstractmethod
    def _do_start(self) -> bool:
        """Acquire; return False or raise on failure"""

    @abstractmethod
    def _do_stop(self) -> bool:
        """Release; return False or raise on failure"""

    @property
    def is_running(self) -> bool:
        return self._state == ComponentState.RUNNING

    @property
    def state(self) -> ComponentState:
        return self._state

    @property
    def last_error(self) -> Optional[Exception]:
        """Exception that caused the last failed transition, if any"""
        return self._last_error

    @property
    def component_name(self) -> str:
        return self._component_name
