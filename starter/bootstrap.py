"""
OAP Bootstrap - Server Starter

Wraps ``ModuleManager.init`` with everything a process needs around it:
running mode, configuration loading, diagnostic output and exit codes.

    exit code 0  boot succeeded (or init mode finished)
    exit code 1  any boot failure

The booting parameters table is logged on every attempt, success or failure.
A failed boot is not rolled back: the process is expected to exit.
"""

from __future__ import annotations

import signal
import threading
import time
from enum import Enum
from typing import Callable, Optional, Union

from module_library.catalog import ModuleCatalog
from module_library.manager import ModuleManager
from observability.logging import BootLogger, bind_context, clear_context
from observability.tracing import create_span
from starter import __version__
from starter.config import StarterConfig, get_config
from starter.config_loader import ApplicationConfigLoader

EXIT_OK = 0
EXIT_BOOT_FAILURE = 1


class RunningMode(str, Enum):
    """How far the server runs before handing control back."""
    NORMAL = "normal"
    INIT = "init"          # boot, initialize storage, then exit
    NO_INIT = "no-init"    # boot without initializing storage

    @classmethod
    def parse(cls, value: Optional[str]) -> "RunningMode":
        if not value:
            return cls.NORMAL
        try:
            return cls(value.strip().lower())
        except ValueError:
            allowed = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown running mode {value!r}, expected one of: {allowed}") from None


class OAPServerBootstrap:
    """
    One boot attempt of the server.

    ``catalog`` may be a factory; it is called inside the boot attempt so a
    discovery failure is reported like any other boot failure.

    ``on_booted`` runs after a successful ``init``, before the running mode
    decides whether to exit; a failure there counts as a boot failure.
    """

    def __init__(
        self,
        catalog: Union[ModuleCatalog, Callable[[], ModuleCatalog]],
        config: Optional[StarterConfig] = None,
        on_booted: Optional[Callable[[ModuleManager, ApplicationConfigLoader], None]] = None,
        boot_logger: Optional[BootLogger] = None,
    ):
        self._config = config or get_config()
        self._on_booted = on_booted
        self._log = boot_logger or BootLogger()
        self._manager = ModuleManager(self._config.description, catalog)
        self._mode: Optional[RunningMode] = None
        self._shutdown_requested = threading.Event()

    @property
    def manager(self) -> ModuleManager:
        return self._manager

    @property
    def mode(self) -> Optional[RunningMode]:
        """Parsed running mode; None until ``start`` has parsed it."""
        return self._mode

    def start(self) -> int:
        """Boot the server and return the process exit code."""
        booting_parameters = self._manager.booting_parameters
        booting_parameters.add_row("Running Mode", self._config.mode or RunningMode.NORMAL.value)
        booting_parameters.add_row("Version", __version__)

        started_at = time.time()
        try:
            self._mode = RunningMode.parse(self._config.mode)
            bind_context(server=self._config.description, mode=self._mode.value)
            self._log.boot_started(self._config.description, self._mode.value, self._config.to_dict())

            config_loader = ApplicationConfigLoader(booting_parameters)
            configuration = config_loader.load(self._config.config_file)

            with create_span("oap.boot", attributes={"oap.mode": self._mode.value}):
                self._manager.init(configuration)

            if self._on_booted is not None:
                self._on_booted(self._manager, config_loader)

            self._log.boot_succeeded(
                len(self._manager.loaded_module_names()), time.time() - started_at
            )
            if self._mode is RunningMode.INIT:
                self._log.init_mode_exit()
            return EXIT_OK
        except Exception as e:
            self._log.boot_failed(e)
            return EXIT_BOOT_FAILURE
        finally:
            self._log.booting_parameters(booting_parameters.render())
            clear_context()

    def request_shutdown(self, *_: object) -> None:
        """Called by signal handlers."""
        self._shutdown_requested.set()

    def wait_for_shutdown(self, install_signal_handlers: bool = True) -> None:
        """Block until SIGINT/SIGTERM or ``request_shutdown``."""
        if install_signal_handlers and threading.current_thread() is threading.main_thread():
            for sig in (signal.SIGTERM, signal.SIGINT):
                signal.signal(sig, self.request_shutdown)
        self._shutdown_requested.wait()
