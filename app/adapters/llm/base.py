from abc import ABC, abstractmethod
from typing import Any


class AbstractLLMClient(ABC):
	"""Interface for LLM clients that answer a chat turn with plain text."""

	@abstractmethod
	async def generate_reply(
		self,
		message: str,
		*,
		system_prompt: str,
		**kwargs: Any,
	) -> str:
		"""Generate a text reply to a single user message.

		Args:
			message: User message to answer.
			system_prompt: Instructions establishing the assistant's role.
			**kwargs: Provider-specific options (e.g., temperature, max_tokens).

		Returns:
			str: The model's reply text.

		Raises:
			LLMAppError: If the provider call fails or returns no content.
		"""
		...
