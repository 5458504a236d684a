from chatrouter.domain.modules.base_module import BaseModule, ParsedCommand
from chatrouter.domain.modules.module_registry import ModuleRegistry

__all__ = ["BaseModule", "ParsedCommand", "ModuleRegistry"]
