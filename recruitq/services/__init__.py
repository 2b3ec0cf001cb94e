"""Services: job store, retry executor, cache and AI clients."""
