"""OpenAI Chat Completions client for meal estimation."""

from dataclasses import dataclass

from openai import APITimeoutError, AsyncOpenAI

from meal_logger.domain.errors import UpstreamTimeoutError
from meal_logger.services.estimation import EstimationClient


@dataclass
class OpenAIEstimationClient(EstimationClient):
    """Estimation client backed by OpenAI chat completions in JSON mode."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str, timeout: float) -> "OpenAIEstimationClient":
        """Create an OpenAI estimation client."""
        return cls(client=AsyncOpenAI(api_key=api_key, timeout=timeout))

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, object]],
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        """Request a JSON-object completion and return its text."""
        try:
            completion = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                response_format={"type": "json_object"},
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except APITimeoutError as exc:
            raise UpstreamTimeoutError() from exc
        if not completion.choices:
            return None
        return completion.choices[0].message.content

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
