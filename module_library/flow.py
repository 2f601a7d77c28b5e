"""
OAP Module Library - Bootstrap Flow

Turns the prepared modules into a startup sequence in which every provider
comes after the providers of all modules it requires, then drives ``start``
and the completion broadcast along that sequence.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Dict, List, Mapping, Set, Tuple

from opentelemetry import trace

from module_library.define import ModuleDefine
from module_library.errors import CycleDependencyError, ErrorContext, UnknownModuleError
from module_library.provider import ModuleProvider

if TYPE_CHECKING:
    from module_library.manager import ModuleManager

logger = logging.getLogger("oap.module")
tracer = trace.get_tracer("oap.module")


class BootstrapFlow:
    """Topological sequencer over the loaded modules' providers."""

    def __init__(self, loaded_modules: Mapping[str, ModuleDefine]):
        self._loaded_modules: Dict[str, ModuleDefine] = dict(loaded_modules)
        self._startup_sequence: List[ModuleProvider] = []
        self._make_sequence()

    @property
    def startup_sequence(self) -> Tuple[ModuleProvider, ...]:
        return tuple(self._startup_sequence)

    def start(self, manager: "ModuleManager") -> None:
        """Check required services and start every provider in sequence order."""
        for provider in self._startup_sequence:
            logger.info(f"start the provider {provider.name} in {provider.module_name} module.")
            with tracer.start_as_current_span("provider.start") as span:
                span.set_attribute("module.name", provider.module_name)
                span.set_attribute("module.provider", provider.name)
                started_at = time.time()

                provider.required_check(provider.module.services)
                provider.start()

                logger.debug(
                    f"{provider.full_name} started ({(time.time() - started_at) * 1000:.0f}ms)"
                )

    def notify_after_completed(self) -> None:
        for provider in self._startup_sequence:
            with tracer.start_as_current_span("provider.notify_after_completed") as span:
                span.set_attribute("module.name", provider.module_name)
                provider.notify_after_completed()

    def _make_sequence(self) -> None:
        pending: List[ModuleProvider] = []
        for module in self._loaded_modules.values():
            provider = module.provider
            for required in provider.required_modules:
                if required not in self._loaded_modules:
                    raise UnknownModuleError(
                        f"{required} module is required by "
                        f"{provider.module_name}.{provider.name}, but not found.",
                        module_names=[required],
                        context=ErrorContext(
                            operation="make_sequence",
                            module_name=provider.module_name,
                            provider_name=provider.name,
                        ),
                    )
            pending.append(provider)

        sequenced: Set[str] = set()
        while pending:
            remaining: List[ModuleProvider] = []
            for provider in pending:
                if all(required in sequenced for required in provider.required_modules):
                    self._startup_sequence.append(provider)
                    sequenced.add(provider.module_name)
                else:
                    remaining.append(provider)

            if len(remaining) == len(pending):
                unplaced = [provider.describe() for provider in remaining]
                raise CycleDependencyError(
                    "Exist cycle module dependencies in \n" + "\n".join(unplaced),
                    unplaced=unplaced,
                    context=ErrorContext(operation="make_sequence"),
                )
            pending = remaining
