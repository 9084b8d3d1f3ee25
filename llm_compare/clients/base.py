from abc import ABC, abstractmethod
from llm_compare.types import ProviderReply

class ComparisonBackend(ABC):
    @abstractmethod
    async def available_providers(self) -> list[str]:
        """Default provider set, used when the caller selects none."""
        ...

    @abstractmethod
    async def compare_one(self, prompt: str, provider_id: str) -> ProviderReply:
        """Ask one provider. Raises ProviderCallError on any failure."""
        ...

    @abstractmethod
    async def check_health(self) -> None:
        """Reachability check. Raises HealthCheckError when unreachable."""
        ...
