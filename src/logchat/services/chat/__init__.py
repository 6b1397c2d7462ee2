"""Chat pipeline package.

The ChatPipeline coordinates:
1. Time window and area resolution
2. Intent classification (via IntentClassifier)
3. Handler dispatch (via HandlerRegistry)
4. Retrieval and generation fallback for unmatched questions
"""
from logchat.services.chat.orchestrator import ChatPipeline, HandlerRegistry, PRIVATE_MODE_MESSAGE
from logchat.services.chat.handlers.base import IntentHandler, QueryContext

__all__ = [
    'ChatPipeline',
    'HandlerRegistry',
    'PRIVATE_MODE_MESSAGE',
    'IntentHandler',
    'QueryContext',
]
