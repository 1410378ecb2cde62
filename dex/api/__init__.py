"""HTTP API for pool state and quotes."""
