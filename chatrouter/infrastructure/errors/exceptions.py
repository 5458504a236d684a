"""
Exceptions raised by the chatrouter core and its collaborators.
"""


class ChatRouterException(Exception):
    """Base exception for all chatrouter errors"""
    pass


class ModuleRegistrationError(ChatRouterException):
    """A module was rejected at registration time"""
    pass


class DuplicateModuleError(ModuleRegistrationError):
    """A module with the same name is already registered"""

    def __init__(self, name: str):
        super().__init__(f"Module already registered: {name}")
        self.name = name


class ConfigurationError(ChatRouterException):
    """Configuration error"""
    pass


# Collaborator-related exceptions
class CollaboratorError(ChatRouterException):
    """Base error for external collaborator calls"""
    pass


class CompletionError(CollaboratorError):
    """AI completion failed or timed out"""
    pass


class MarketDataError(CollaboratorError):
    """Market-data lookup failed"""
    pass


class WebSearchError(CollaboratorError):
    """Web search failed"""
    pass


class DeliveryError(CollaboratorError):
    """Outbound message delivery failed"""
    pass
