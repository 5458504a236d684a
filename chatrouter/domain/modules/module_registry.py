from typing import Dict, Iterable, Iterator, List, Optional
import structlog

from chatrouter.domain.models.conversation import ModuleInfo
from chatrouter.domain.modules.base_module import BaseModule
from chatrouter.infrastructure.errors.exceptions import DuplicateModuleError, ModuleRegistrationError

logger = structlog.get_logger(__name__)


class ModuleRegistry:
    """Ordered collection of capability modules

    Modules are kept sorted ascending by priority. The sort is stable, so
    modules with equal priority stay in registration order.
    """

    def __init__(self, modules: Iterable[BaseModule] = ()):
        self._modules: List[BaseModule] = []
        self._by_name: Dict[str, BaseModule] = {}
        self.register_all(modules)

    def register(self, module: BaseModule) -> None:
        """Register a module, rejecting misconfigured ones"""

        self._validate(module)

        self._modules.append(module)
        self._modules.sort(key=lambda m: m.priority)
        self._by_name[module.name] = module

        logger.info("Registered module", module=module.name, priority=module.priority)

    def register_all(self, modules: Iterable[BaseModule]) -> None:
        for module in modules:
            self.register(module)

    def _validate(self, module: BaseModule) -> None:
        if not isinstance(module, BaseModule):
            raise ModuleRegistrationError(
                f"Expected a BaseModule instance, got {type(module).__name__}"
            )

        name = module.name
        if not isinstance(name, str) or not name.strip():
            raise ModuleRegistrationError(f"Module name must be a non-empty string: {name!r}")

        priority = module.priority
        # bool is an int subclass but never a meaningful priority
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ModuleRegistrationError(
                f"Module {name} has invalid priority {priority!r}; expected int"
            )

        if name in self._by_name:
            raise DuplicateModuleError(name)

    def get(self, name: str) -> Optional[BaseModule]:
        return self._by_name.get(name)

    def get_module_info(self) -> List[ModuleInfo]:
        """Name and description of every module, in dispatch order"""
        return [module.get_info() for module in self._modules]

    def snapshot(self) -> tuple:
        return tuple(self._modules)

    def clear(self) -> None:
        self._modules.clear()
        self._by_name.clear()

    def __iter__(self) -> Iterator[BaseModule]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name
