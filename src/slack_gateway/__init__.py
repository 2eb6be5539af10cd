from .adapters.http.app import create_app
from .application.services import InstallationService, MessagingService, TokenResolver
from .config import GatewayConfig
from .domain.models import TokenRecord
from .infrastructure.token_store.file import FileTokenStore
from .infrastructure.token_store.in_memory import InMemoryTokenStore

__all__ = [
    "create_app",
    "GatewayConfig",
    "InstallationService",
    "MessagingService",
    "TokenResolver",
    "TokenRecord",
    "FileTokenStore",
    "InMemoryTokenStore",
]
