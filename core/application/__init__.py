"""Application layer - workflows and the gateway interfaces they depend on."""
