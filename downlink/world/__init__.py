"""World container, persisted documents and data loaders."""
