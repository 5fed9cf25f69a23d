"""mankier.com shell command explanation client."""

from typing import Optional

import httpx

from account_linker.core import ExplainError, Explainer


class MankierClient(Explainer):
    """Explain shell commands using the mankier.com API."""

    def __init__(
        self,
        timeout: float = 30.0,
        endpoint: str = "https://www.mankier.com/api/v2/explain/",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout = timeout
        self.endpoint = endpoint
        self.client = client

    async def explain(self, command: str) -> str:
        """Return the plain text explanation of a shell command."""
        params = {"q": command}
        try:
            if self.client is not None:
                response = await self.client.get(self.endpoint, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.endpoint, params=params)
        except httpx.HTTPError as e:
            raise ExplainError(f"Explain request failed: {e}") from e

        if not response.is_success:
            raise ExplainError(f"Explain returned invalid code: {response.status_code}")

        return response.text.strip()
