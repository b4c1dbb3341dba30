"""Runtime configuration for Precedent GraphRAG."""
