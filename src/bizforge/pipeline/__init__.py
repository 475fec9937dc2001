"""Generation pipeline: stage table, contracts, executor and orchestrator."""
