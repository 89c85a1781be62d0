"""HTTP API for the distributor portal."""
