from abc import ABC, abstractmethod
from press.types import Completion

class LLMClient(ABC):
    @abstractmethod
    async def complete(self, user_prompt: str, *, system_prompt: str | None = None) -> Completion:
        """Return the completion or raise ApiTransientError / ApiFatalError."""
        ...
