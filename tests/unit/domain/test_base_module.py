import pytest

from chatrouter.domain.modules.base_module import BaseModule, ParsedCommand
from tests.conftest import PatternModule


def test_abstract_contract_cannot_be_instantiated():
    with pytest.raises(TypeError):
        BaseModule("Bare", "no behaviour")


def test_parse_command():
    module = PatternModule("Trading", 10, r".*")

    assert module.parse_command("/position_detail  btc extra") == ParsedCommand(
        command="/position_detail",
        args=["btc", "extra"],
        full_text="/position_detail  btc extra",
    )
    assert module.parse_command("") == ParsedCommand(command="", args=[], full_text="")


def test_info_and_repr():
    module = PatternModule("Help", 20, r"help")

    assert module.get_info().model_dump() == {"name": "Help", "description": "Help test module"}
    assert repr(module) == "PatternModule(name='Help', priority=20)"


@pytest.mark.asyncio
async def test_default_hooks_are_noops(context):
    class Minimal(BaseModule):
        async def can_handle(self, text, context):
            return False

        async def handle(self, text, context):
            return ""

    module = Minimal("Minimal", "does nothing")

    assert module.priority == 100
    assert await module.initialize() is None
    assert await module.cleanup() is None
