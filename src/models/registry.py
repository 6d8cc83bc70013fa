"""Model registry for managing clients."""

from models.client import LLMClient, VLMClient


class ModelEndpoint:
    """Model endpoint configuration."""

    def __init__(
        self,
        name: str,
        base_url: str,
        api_key: str = "",
        model_name: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: float = 300.0,
    ):
        self.name = name
        self.base_url = base_url
        self.api_key = api_key
        self.model_name = model_name
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout


class ModelRegistry:
    """Registry for managing model clients."""

    def __init__(self):
        self._clients: dict[str, LLMClient] = {}
        self._endpoints: dict[str, ModelEndpoint] = {}

    def register_endpoint(self, endpoint: ModelEndpoint):
        """Register a model endpoint."""
        self._endpoints[endpoint.name] = endpoint

    def _endpoint(self, model_name: str) -> ModelEndpoint:
        endpoint = self._endpoints.get(model_name)
        if not endpoint:
            raise ValueError(f"Model endpoint not found: {model_name}")
        return endpoint

    def _client_kwargs(self, endpoint: ModelEndpoint) -> dict:
        return {
            "base_url": endpoint.base_url,
            "api_key": endpoint.api_key,
            "model_name": endpoint.model_name or endpoint.name,
            "max_tokens": endpoint.max_tokens,
            "temperature": endpoint.temperature,
            "timeout": endpoint.timeout,
        }

    def get_llm_client(self, model_name: str) -> LLMClient:
        """Get or create an LLM client."""
        if model_name in self._clients:
            return self._clients[model_name]

        client = LLMClient(**self._client_kwargs(self._endpoint(model_name)))
        self._clients[model_name] = client
        return client

    def get_vlm_client(self, model_name: str) -> VLMClient:
        """Get or create a VLM client."""
        if model_name in self._clients:
            client = self._clients[model_name]
            if isinstance(client, VLMClient):
                return client

        client = VLMClient(**self._client_kwargs(self._endpoint(model_name)))
        self._clients[model_name] = client
        return client

    def close_all(self):
        """Close all client connections."""
        for client in self._clients.values():
            client.close()
        self._clients.clear()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close_all()
