"""Provider implementations."""

from app.ai.providers.anthropic_batches import AnthropicBatchClient, BatchRequest, MessageGenerator, RemoteBatchClient, RemoteBatchStatus

__all__ = ["AnthropicBatchClient", "BatchRequest", "MessageGenerator", "RemoteBatchClient", "RemoteBatchStatus"]
