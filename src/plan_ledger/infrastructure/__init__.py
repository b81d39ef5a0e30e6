"""Infrastructure: in-memory store, event log, bus and collaborator adapters."""
