from slack_gateway.infrastructure.token_store.in_memory import InMemoryTokenStore
from slack_gateway.infrastructure.token_store.file import FileTokenStore

__all__ = ["InMemoryTokenStore", "FileTokenStore"]
