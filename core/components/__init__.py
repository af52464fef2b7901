"""Bot components (discord.py cogs) for chat events and slash commands.

Modules:
- base: Base class for all components and the reply texts
- chat_events: Reads messages of the reading channel aloud
- command: Slash commands
"""

from core.components.base import ComponentBase, ComponentDescriptor, Replies
from core.components.chat_events import ChatEventsManager
from core.components.command import SlashCommandManager

__all__: list[str] = [
    "ChatEventsManager",
    "ComponentBase",
    "ComponentDescriptor",
    "Replies",
    "SlashCommandManager",
]
