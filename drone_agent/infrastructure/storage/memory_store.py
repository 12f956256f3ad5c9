import asyncio
import copy
from dataclasses import replace
from typing import Dict, List

from drone_agent.domain.conversation import Checkpoint, ConversationStore, MessageRecord, Thread


class InMemoryConversationStore(ConversationStore):
    """Process-local checkpoint store.

    Each append builds a new checkpoint and swaps it in under a lock, so a
    reader sees either the previous or the next snapshot.
    """

    def __init__(self) -> None:
        self._checkpoints: Dict[str, Checkpoint] = {}
        self._lock = asyncio.Lock()

    async def append(self, thread_id: str, messages: List[MessageRecord]) -> List[MessageRecord]:
        async with self._lock:
            current = self._checkpoints.get(thread_id)
            seq = current.write_seq if current else 0
            stored: List[MessageRecord] = []
            for message in messages:
                seq += 1
                stored.append(replace(copy.deepcopy(message), thread_id=thread_id, sequence=seq))
            previous = list(current.messages) if current else []
            self._checkpoints[thread_id] = Checkpoint(
                thread_id=thread_id,
                messages=previous + stored,
                write_seq=seq,
            )
            return copy.deepcopy(stored)

    async def load(self, thread_id: str) -> List[MessageRecord]:
        return (await self.load_thread(thread_id)).messages

    async def load_thread(self, thread_id: str) -> Thread:
        async with self._lock:
            current = self._checkpoints.get(thread_id)
            if current is None:
                return Thread(id=thread_id)
            return Thread(
                id=thread_id,
                messages=copy.deepcopy(current.messages),
                last_write_seq=current.write_seq,
            )

    async def delete_thread(self, thread_id: str) -> None:
        async with self._lock:
            self._checkpoints.pop(thread_id, None)

    async def list_threads(self) -> List[str]:
        async with self._lock:
            return sorted(self._checkpoints)
