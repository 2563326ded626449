# Conversation context and token budget engine

__version__ = "1.0.0"
