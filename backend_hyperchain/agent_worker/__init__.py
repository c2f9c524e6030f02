"""
Agent worker — ingestion pipeline and runtime assembly.

Runs every configured source into the analyzer, store and alert engine, and
owns start-up and shutdown of the shared components.
"""

from backend_hyperchain.agent_worker.pipeline import TransactionPipeline
from backend_hyperchain.agent_worker.runtime import HyperchainRuntime, build_runtime, build_sources

__all__ = ["HyperchainRuntime", "TransactionPipeline", "build_runtime", "build_sources"]
