import pytest
from pydantic import ValidationError

from chatrouter.domain.modules.module_registry import ModuleRegistry
from chatrouter.infrastructure.errors.exceptions import DuplicateModuleError, ModuleRegistrationError
from tests.conftest import PatternModule


def test_modules_are_ordered_by_priority():
    registry = ModuleRegistry([
        PatternModule("AI", 50, r".*"),
        PatternModule("Trading", 10, r"/position"),
        PatternModule("Help", 20, r"/help"),
    ])

    assert [m.name for m in registry] == ["Trading", "Help", "AI"]
    assert [info.name for info in registry.get_module_info()] == ["Trading", "Help", "AI"]


def test_registration_order_breaks_ties():
    registry = ModuleRegistry()
    registry.register(PatternModule("B", 5, r"x"))
    registry.register(PatternModule("A", 5, r"x"))
    registry.register(PatternModule("C", 1, r"x"))

    assert [m.name for m in registry] == ["C", "B", "A"]


def test_duplicate_name_is_rejected():
    registry = ModuleRegistry([PatternModule("Help", 20, r"help")])

    with pytest.raises(DuplicateModuleError) as exc_info:
        registry.register(PatternModule("Help", 1, r"other"))

    assert exc_info.value.name == "Help"
    assert len(registry) == 1


def test_non_module_is_rejected():
    registry = ModuleRegistry()

    with pytest.raises(ModuleRegistrationError):
        registry.register(object())


def test_bool_priority_is_rejected():
    class BoolPriority(PatternModule):
        @property
        def priority(self):
            return True

    with pytest.raises(ModuleRegistrationError):
        ModuleRegistry([BoolPriority("Flag", 1, r"x")])


def test_descriptor_validates_name_and_priority():
    with pytest.raises(ValidationError):
        PatternModule("", 1, r"x")
    with pytest.raises(ValidationError):
        PatternModule("Float", 1.5, r"x")


def test_lookup_and_snapshot_are_independent_of_later_changes():
    help_module = PatternModule("Help", 20, r"help")
    registry = ModuleRegistry([help_module])
    snapshot = registry.snapshot()

    registry.register(PatternModule("AI", 50, r".*"))

    assert registry.get("Help") is help_module
    assert registry.get("Missing") is None
    assert "AI" in registry
    assert len(snapshot) == 1

    registry.clear()
    assert len(registry) == 0
    assert "Help" not in registry
