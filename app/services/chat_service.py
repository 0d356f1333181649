"""Security assistant chat service.

Answers a single user message with the platform's assistant persona. The
service never fails a request because of the provider: without a configured
client it answers in limited mode, and provider errors are logged and
answered with a fixed apology.
"""

import logging

from app.adapters.llm.base import AbstractLLMClient
from app.core.errors import LLMAppError, ValidationAppError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You are Harmony AI, an expert cybersecurity assistant for the Harmony Shield platform.

Harmony Shield Platform Features:
- Real-time security monitoring and threat detection
- Advanced fraud detection and prevention systems
- Deep search capabilities for investigating suspicious activity
- AI-powered scanning for URLs, files, and content
- Recovery services for fraud victims
- Smart feeds with live security updates
- Comprehensive reporting and analytics
- Multi-language support

Your Capabilities:
- Explain Harmony Shield features and how to use them
- Provide cybersecurity best practices and advice
- Help users understand security threats (phishing, malware, ransomware, social engineering, etc.)
- Guide users on fraud prevention and digital safety
- Offer actionable recommendations for staying secure online
- Answer questions about the platform's tools and services

Tone: Professional, helpful, and reassuring. Keep responses clear, concise, and actionable.
""".strip()

LIMITED_MODE_REPLY = (
    "I'm Harmony AI, your cybersecurity assistant. I'm here to help you with:\n\n"
    "• Understanding Harmony Shield's security features\n"
    "• Cybersecurity best practices\n"
    "• Fraud detection and prevention\n"
    "• Digital safety guidance\n\n"
    "While I'm currently running in limited mode, I can still provide general "
    "guidance. How can I help you today?"
)

FALLBACK_REPLY = (
    "I apologize, but I'm experiencing technical difficulties. Please try again "
    "in a moment, or feel free to explore the Harmony Shield platform features "
    "on your own."
)


class ChatService:
    """Produce assistant replies through an optional LLM client."""

    def __init__(
        self,
        llm: AbstractLLMClient | None,
        *,
        max_message_chars: int = 4000,
        max_tokens: int = 800,
        temperature: float = 0.7,
    ) -> None:
        self._llm = llm
        self._max_message_chars = max_message_chars
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def limited_mode(self) -> bool:
        return self._llm is None

    async def reply(self, message: str) -> str:
        """Answer one user message.

        Args:
            message: Non-empty user message.

        Returns:
            str: Assistant reply, limited-mode greeting or fallback apology.

        Raises:
            ValidationAppError: If the message exceeds the configured length.
        """
        if len(message) > self._max_message_chars:
            raise ValidationAppError(
                code="message_too_long",
                message=f"Message exceeds {self._max_message_chars} characters",
                details={"hint": "Shorten the message and try again"},
            )

        if self._llm is None:
            logger.info("chat.limited_mode")
            return LIMITED_MODE_REPLY

        try:
            reply = await self._llm.generate_reply(
                message,
                system_prompt=SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except LLMAppError as exc:
            logger.error(
                "chat.llm_failed",
                extra={"error_code": exc.code, "error_message": exc.message},
            )
            return FALLBACK_REPLY

        logger.info(
            "chat.completed",
            extra={"message_chars": len(message), "reply_chars": len(reply)},
        )
        return reply
