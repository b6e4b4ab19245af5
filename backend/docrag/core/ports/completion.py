from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional
from docrag.core.entities import ChatMessage


class ICompletionService(ABC):
    @abstractmethod
    def complete(self, prompt: str) -> str:
        ...

    @abstractmethod
    def complete_chat(
        self, messages: List[ChatMessage], system_prompt: str, options: Optional[dict] = None
    ) -> str:
        ...

    @abstractmethod
    def stream_chat(
        self, messages: List[ChatMessage], context: str, options: Optional[dict] = None
    ) -> Iterator[str]:
        ...
