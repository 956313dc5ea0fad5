"""HTTP API for blobgate."""
