"""Response synthesizer: the final grounded answer of a retrieval turn."""

from __future__ import annotations

from typing import List

from drone_agent.domain.conversation import MessageRecord, Thread, conversational_window, new_message
from drone_agent.domain.models import ChatMessage, ChatRequest, RetrievedDocument
from drone_agent.infrastructure.logging.logger import logger
from drone_agent.prompts import load_system_prompt
from drone_agent.providers.base import ProviderClient, invoke_model
from drone_agent.retrieval.augmentor import format_context

DEFAULT_WINDOW = 10


class ResponseSynthesizer:
    """Build a bounded prompt and run one non-streaming model call.

    The prompt is a system instruction carrying the retrieved context (or an
    explicit "say you don't know" instruction when there is none) followed by
    the last ``window`` conversational messages. Older messages stay in the
    persisted history but are not sent.
    """

    def __init__(
        self,
        provider: ProviderClient,
        *,
        model: str,
        window: int = DEFAULT_WINDOW,
        temperature: float = 0.0,
    ) -> None:
        self._provider = provider
        self._model = model
        self.window = window
        self._temperature = temperature

    def build_prompt(self, messages: List[MessageRecord], documents: List[RetrievedDocument]) -> List[ChatMessage]:
        if documents:
            system = load_system_prompt("synthesis_system") + "\n\n" + format_context(documents)
        else:
            system = load_system_prompt("synthesis_no_context")
        prompt = [ChatMessage(role="system", content=system)]
        for record in conversational_window(messages, self.window):
            prompt.append(ChatMessage(role=record.role, content=record.text))
        return prompt

    async def synthesize(self, thread: Thread, documents: List[RetrievedDocument]) -> MessageRecord:
        prompt = self.build_prompt(thread.messages, documents)
        req = ChatRequest(
            provider=getattr(self._provider, "name", "unknown"),
            model=self._model,
            messages=prompt,
            temperature=self._temperature,
        )
        logger.info(
            "synthesize.start",
            extra={"extra": {"thread_id": thread.id, "prompt_messages": len(prompt), "documents": len(documents)}},
        )
        result = await invoke_model(self._provider, req)
        content = result.message.content or ""
        logger.info("synthesize.end", extra={"extra": {"thread_id": thread.id, "chars": len(content)}})
        return new_message(
            thread.id,
            "assistant",
            content,
            meta={
                "grounded": bool(documents),
                "sources": [d.source_id for d in documents],
            },
        )
