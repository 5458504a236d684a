"""
Platform-agnostic message formatting.

Module replies are written in a light markdown dialect (``**bold**``,
``*italic*``, backticks, ``[text](url)`` links, ``#`` headers). These helpers
convert that dialect for the delivery channel and enforce length limits.
"""

from typing import Dict
import re

SUPPORTED_FORMATS = ("markdown", "html", "plain", "whatsapp", "discord")

_MAX_LENGTHS: Dict[str, int] = {
    "whatsapp": 65536,
    "discord": 2000,
    "html": 4096,
    "markdown": 4096,
    "plain": 4096,
}

_BOLD = re.compile(r"\*\*(.*?)\*\*")
_ITALIC = re.compile(r"\*(.*?)\*")
_CODE = re.compile(r"`(.*?)`")
_LINK = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_HEADER = re.compile(r"^#{1,6}\s*", re.MULTILINE)


def format_message(message: str, fmt: str = "markdown", max_length: int = 4000) -> str:
    """Convert a markdown reply for a platform and cap its length"""

    if fmt == "html":
        formatted = convert_markdown_to_html(message)
    elif fmt == "plain":
        formatted = strip_formatting(message)
    elif fmt == "whatsapp":
        formatted = convert_markdown_to_whatsapp(message)
    elif fmt == "discord":
        formatted = convert_markdown_to_discord(message)
    else:
        formatted = message

    if len(formatted) > max_length:
        formatted = formatted[:max_length - 3] + "..."

    return formatted


def strip_formatting(message: str) -> str:
    text = _BOLD.sub(r"\1", message)
    text = _ITALIC.sub(r"\1", text)
    text = _CODE.sub(r"\1", text)
    text = _LINK.sub(r"\1 (\2)", text)
    text = _HEADER.sub("", text)
    text = re.sub(r"\n\s*\n", "\n", text)
    return text.strip()


def convert_markdown_to_html(message: str) -> str:
    text = re.sub(r"^### (.*)$", r"<h3>\1</h3>", message, flags=re.MULTILINE)
    text = re.sub(r"^## (.*)$", r"<h2>\1</h2>", text, flags=re.MULTILINE)
    text = re.sub(r"^# (.*)$", r"<h1>\1</h1>", text, flags=re.MULTILINE)
    text = _BOLD.sub(r"<b>\1</b>", text)
    text = _ITALIC.sub(r"<i>\1</i>", text)
    text = _CODE.sub(r"<code>\1</code>", text)
    text = _LINK.sub(r'<a href="\2">\1</a>', text)
    return text.replace("\n", "<br>")


def convert_markdown_to_whatsapp(message: str) -> str:
    # Bold goes through a placeholder so the italic pass does not eat it
    placeholder = "\x00BOLD\x00"
    text = _BOLD.sub(placeholder + r"\1" + placeholder, message)
    text = _ITALIC.sub(r"_\1_", text)
    text = text.replace(placeholder, "*")
    text = _CODE.sub(r"\1", text)
    text = _LINK.sub(r"\1: \2", text)
    return _HEADER.sub("", text)


def convert_markdown_to_discord(message: str) -> str:
    text = re.sub(r"^#{1,6}[ \t]*(.*)$", r"**\1**", message, flags=re.MULTILINE)
    return text.replace("\n\n", "\n")


def escape_for_format(text: str, fmt: str) -> str:
    """Escape characters that carry meaning in the target format"""

    if fmt == "html":
        return (
            text.replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&#x27;")
        )
    if fmt == "markdown":
        return re.sub(r"([*_`\[\]()~>#+\-=|{}.!])", r"\\\1", text)
    if fmt == "whatsapp":
        return re.sub(r"([*_~`])", r"\\\1", text)
    return text


def get_max_length(fmt: str) -> int:
    return _MAX_LENGTHS.get(fmt, 4096)
