import re

from chatrouter.domain.models.conversation import ConversationContext
from chatrouter.domain.modules.base_module import BaseModule


class HelpModule(BaseModule):
    """Lists the bot's capabilities"""

    PATTERNS = [
        re.compile(r"^/help$", re.I),
        re.compile(r"^/start$", re.I),
        re.compile(r"^help$", re.I),
        re.compile(r"what can you do", re.I),
        re.compile(r"how do i", re.I),
        re.compile(r"commands", re.I),
    ]

    def __init__(self, priority: int = 20):
        super().__init__(
            name="Help",
            description="Provides help and command information",
            priority=priority
        )

    async def can_handle(self, text: str, context: ConversationContext) -> bool:
        return any(pattern.search(text) for pattern in self.PATTERNS)

    async def handle(self, text: str, context: ConversationContext) -> str:
        router = context.router
        module_info = router.get_module_info() if router else []

        lines = ["🤖 **Telegram Bot Help**", "", "I can help you with the following:", ""]

        for info in module_info:
            if info.name == self.name:
                continue
            lines.append(f"**{info.name}**")
            lines.append(info.description)
            lines.append("")

        lines.extend([
            "**General Commands:**",
            "• /help - Show this help message",
            "• /trading-help - Trading-specific commands",
            "",
            "**Natural Language:**",
            "You can also just type questions naturally!",
            "Examples:",
            "• \"What is Bitcoin?\"",
            "• \"Check my trading positions\"",
            "",
            "💡 **Tip:** Start commands with `/` or just ask me anything!",
        ])
        return "\n".join(lines)
