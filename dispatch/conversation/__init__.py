from dispatch.conversation.extraction import (
    ExtractionOracle,
    OpenAIExtractionOracle,
    parse_extraction,
)
from dispatch.conversation.gatekeeper import (
    CheckpointOutcome,
    ConfirmationGatekeeper,
    SessionPhase,
)
from dispatch.conversation.session import (
    ChatSession,
    ConversationProvider,
    OpenAIConversationProvider,
    VoiceCheckpointer,
)

__all__ = [
    "ExtractionOracle",
    "OpenAIExtractionOracle",
    "parse_extraction",
    "CheckpointOutcome",
    "ConfirmationGatekeeper",
    "SessionPhase",
    "ChatSession",
    "ConversationProvider",
    "OpenAIConversationProvider",
    "VoiceCheckpointer",
]
